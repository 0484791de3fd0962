import threading
import time
import unittest

from src.backend.fs.locks import KeyedLocks
from src.backend.fs.naming import (
    generate_image_filename,
    get_extension_for_mime,
    is_image_file,
    parse_image_filename,
)
from src.shared.stats import AdvisoryCounter


class TestNaming(unittest.TestCase):
    def test_generate_and_parse(self) -> None:
        name = generate_image_filename("0a1b", ".PNG")
        self.assertEqual(name, "0a1b.png")
        parsed = parse_image_filename(name)
        self.assertIsNotNone(parsed)
        self.assertEqual(parsed.stem, "0a1b")
        self.assertEqual(parsed.extension, "png")

    def test_parse_rejects_paths_and_foreign_names(self) -> None:
        for value in ("../0a1b.png", "x/0a1b.png", "0a1b.jpeg", "0A1B.png", ".", "..", "0a1b.png/", "0a1b.png\n"):
            with self.subTest(value=value):
                self.assertIsNone(parse_image_filename(value))

    def test_generate_rejects_bad_input(self) -> None:
        with self.assertRaises(ValueError):
            generate_image_filename("xyz1", "png")
        with self.assertRaises(ValueError):
            generate_image_filename("abcd", "bmp")
        with self.assertRaises(ValueError):
            generate_image_filename("abcd", "jpeg")

    def test_is_image_file(self) -> None:
        for name in ("a.jpg", "b.JPEG", "c.png", "d.gif", "e.webp"):
            self.assertTrue(is_image_file(name), name)
        for name in ("notes.txt", "noext", "archive.zip", ".png.tmp"):
            self.assertFalse(is_image_file(name), name)

    def test_extension_for_mime(self) -> None:
        self.assertEqual(get_extension_for_mime("image/jpeg"), "jpg")
        self.assertEqual(get_extension_for_mime("IMAGE/PNG; charset=binary"), "png")
        self.assertIsNone(get_extension_for_mime("image/bmp"))


class TestKeyedLocks(unittest.TestCase):
    def test_same_key_same_lock(self) -> None:
        locks = KeyedLocks()
        self.assertIs(locks.get("u", "a"), locks.get("u", "a"))
        self.assertIsNot(locks.get("u", "a"), locks.get("u", "b"))
        self.assertEqual(len(locks), 2)

    def test_hold_excludes_other_threads(self) -> None:
        locks = KeyedLocks()
        events: list[str] = []

        def contender() -> None:
            with locks.hold("u", "a"):
                events.append("contender")

        with locks.hold("u", "a"):
            thread = threading.Thread(target=contender)
            thread.start()
            time.sleep(0.05)
            events.append("holder")
        thread.join(timeout=2)

        self.assertEqual(events, ["holder", "contender"])

    def test_hold_many_is_reentrant(self) -> None:
        locks = KeyedLocks()
        with locks.hold_many("u", ["b", "a", "b"]):
            with locks.hold("u", "a"):
                pass


class TestAdvisoryCounter(unittest.TestCase):
    def test_increment_decrement_never_negative(self) -> None:
        counter = AdvisoryCounter()
        counter.increment()
        counter.increment(2)
        self.assertEqual(counter.value, 3)
        counter.decrement(5)
        self.assertEqual(counter.value, 0)

    def test_concurrent_increments_are_not_lost(self) -> None:
        counter = AdvisoryCounter()

        def bump() -> None:
            for _ in range(1000):
                counter.increment()

        threads = [threading.Thread(target=bump) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(counter.value, 8000)


if __name__ == "__main__":
    unittest.main()
