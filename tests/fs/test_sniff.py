import io
import unittest

from src.backend.fs.sniff import SNIFF_LEN, classify, sniff_mime


PNG = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 64
JPEG = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x01" * 64
GIF = b"GIF89a" + b"\x01\x00\x01\x00" + b"\x00" * 64
WEBP = b"RIFF\x24\x00\x00\x00WEBPVP8 " + b"\x00" * 64


class _BrokenStream(io.BytesIO):
    def read(self, *args, **kwargs):
        raise OSError("disk on fire")


class TestSniffMime(unittest.TestCase):
    def test_accepted_image_types(self) -> None:
        self.assertEqual(sniff_mime(PNG), "image/png")
        self.assertEqual(sniff_mime(JPEG), "image/jpeg")
        self.assertEqual(sniff_mime(GIF), "image/gif")
        self.assertEqual(sniff_mime(b"GIF87a" + b"\x00" * 10), "image/gif")
        self.assertEqual(sniff_mime(WEBP), "image/webp")

    def test_other_types(self) -> None:
        self.assertEqual(sniff_mime(b"%PDF-1.4 ..."), "application/pdf")
        self.assertEqual(sniff_mime(b"BM" + b"\x00" * 20), "image/bmp")
        self.assertEqual(sniff_mime(b"RIFF\x24\x00\x00\x00WAVEfmt "), "audio/wave")
        self.assertEqual(sniff_mime(b"PK\x03\x04rest"), "application/zip")
        self.assertEqual(sniff_mime(b"plain words"), "text/plain; charset=utf-8")
        self.assertEqual(sniff_mime(b"\x01\x02\x03\x04"), "application/octet-stream")

    def test_truncated_signature_does_not_match(self) -> None:
        self.assertNotEqual(sniff_mime(b"\x89PNG"), "image/png")
        self.assertNotEqual(sniff_mime(b"RIFF\x00\x00\x00\x00WEBP"), "image/webp")


class TestClassify(unittest.TestCase):
    def test_accepts_and_maps_extension(self) -> None:
        cases = [(PNG, "png"), (JPEG, "jpg"), (GIF, "gif"), (WEBP, "webp")]
        for data, ext in cases:
            with self.subTest(ext=ext):
                self.assertEqual(classify(io.BytesIO(data)), (ext, True))

    def test_rewinds_stream_to_start(self) -> None:
        data = PNG + b"\xaa" * (SNIFF_LEN * 3)
        stream = io.BytesIO(data)
        classify(stream)
        self.assertEqual(stream.tell(), 0)
        self.assertEqual(stream.read(), data)

    def test_rejects_non_images(self) -> None:
        self.assertEqual(classify(io.BytesIO(b"just text")), ("", False))
        self.assertEqual(classify(io.BytesIO(b"BM" + b"\x00" * 40)), ("", False))

    def test_rejects_empty_stream(self) -> None:
        self.assertEqual(classify(io.BytesIO(b"")), ("", False))

    def test_read_failure_is_rejection(self) -> None:
        self.assertEqual(classify(_BrokenStream(PNG)), ("", False))

    def test_only_leading_bytes_matter(self) -> None:
        # PNG signature past the sniff window is ignored
        data = b"x" * SNIFF_LEN + PNG
        self.assertEqual(classify(io.BytesIO(data)), ("", False))


if __name__ == "__main__":
    unittest.main()
