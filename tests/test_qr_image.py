import base64

from vatinqr_web import qr_image

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def test_png_bytes():
    assert qr_image.png_bytes("https://qr.example.test/qr/abc").startswith(PNG_SIGNATURE)


def test_data_url_embeds_png():
    url = qr_image.data_url("https://qr.example.test/qr/abc")
    prefix = "data:image/png;base64,"
    assert url.startswith(prefix)
    assert base64.b64decode(url[len(prefix):]).startswith(PNG_SIGNATURE)


def test_lookup_url():
    assert qr_image.lookup_url("https://qr.example.test/", "1234") == "https://qr.example.test/qr/1234"
    assert qr_image.lookup_url("https://qr.example.test", "a b") == "https://qr.example.test/qr/a%20b"
