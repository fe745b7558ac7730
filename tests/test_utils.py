import unittest

from PIL import Image

from fakes import png_bytes
from services.nsfw_detect_service.utils import (
    InitErrorKind,
    classify_init_error,
    decode_image,
    repo_cache_folder,
    top_result,
)


class ClassifyInitErrorTestCase(unittest.TestCase):
    def test_signatures(self):
        cases = [
            "Load model failed:system error number 13 occurred",
            "onnxruntime: failed:system error",
            "EACCES: Permission denied, open '/cache/model.onnx'",
        ]
        for message in cases:
            with self.subTest(message=message):
                self.assertIs(classify_init_error(RuntimeError(message)), InitErrorKind.CACHE_CORRUPTION)

    def test_python_permission_error(self):
        exc = PermissionError(13, "Permission denied", "/root/.cache/huggingface")
        self.assertIs(classify_init_error(exc), InitErrorKind.CACHE_CORRUPTION)

    def test_other_errors(self):
        for exc in (ValueError("network timeout"), RuntimeError("permission denied"), RuntimeError(""), KeyError()):
            with self.subTest(exc=exc):
                self.assertIs(classify_init_error(exc), InitErrorKind.OTHER)


class ImageUtilsTestCase(unittest.TestCase):
    def test_repo_cache_folder(self):
        self.assertEqual(repo_cache_folder("AdamCodd/vit-base-nsfw-detector"),
                         "models--AdamCodd--vit-base-nsfw-detector")

    def test_decode_image_ignores_wrong_mime(self):
        image = decode_image(png_bytes(size=(4, 3)), "image/jpeg")
        self.assertIsInstance(image, Image.Image)
        self.assertEqual(image.mode, "RGB")
        self.assertEqual(image.size, (4, 3))

    def test_decode_image_default_mime(self):
        self.assertEqual(decode_image(png_bytes()).mode, "RGB")

    def test_decode_image_rejects_garbage(self):
        with self.assertRaises(Exception):
            decode_image(b"definitely not an image", "image/png")

    def test_top_result(self):
        self.assertEqual(top_result([{"label": "nsfw", "score": 0.9}, {"label": "normal", "score": 0.1}])["label"],
                         "nsfw")
        self.assertEqual(top_result([[{"label": "normal", "score": 0.8}]])["label"], "normal")
        self.assertEqual(top_result({"label": "nsfw", "score": 0.7})["label"], "nsfw")

    def test_top_result_empty(self):
        with self.assertRaises(ValueError):
            top_result([])
        with self.assertRaises(ValueError):
            top_result([[]])


if __name__ == "__main__":
    unittest.main()
