import unittest
import sys
import os
from datetime import datetime

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from src.shared.utils import (
    parse_date, format_bytes, format_speed, format_time, phase_message, download_filename,
    resolve_file_url, add_query_param, split_full_name, split_subjects, ensure_json_serializable
)


class TestFormatting(unittest.TestCase):
    def test_format_bytes(self):
        self.assertEqual(format_bytes(0), '0 B')
        self.assertEqual(format_bytes(None), '0 B')
        self.assertEqual(format_bytes(512), '512 B')
        self.assertEqual(format_bytes(1536), '1.5 KB')
        self.assertEqual(format_bytes(1024 * 1024), '1 MB')
        self.assertEqual(format_speed(2048), '2 KB/s')

    def test_format_time(self):
        self.assertEqual(format_time(None), '--')
        self.assertEqual(format_time(float('inf')), '--')
        self.assertEqual(format_time(0), '--')
        self.assertEqual(format_time(45), '45s')
        self.assertEqual(format_time(125), '2m 5s')
        self.assertEqual(format_time(3723), '1h 2m 3s')

    def test_phase_message(self):
        self.assertEqual(phase_message('compressing'), 'Compressing video...')
        self.assertEqual(phase_message('unknown'), 'Processing...')

    def test_parse_date(self):
        self.assertEqual(parse_date('2024-01-15T10:30:00.000Z'), '2024-01-15')
        self.assertEqual(parse_date(datetime(2024, 3, 1, 8, 0)), '2024-03-01')
        self.assertIsNone(parse_date('not a date'))


class TestFiles(unittest.TestCase):
    def test_download_filename(self):
        self.assertEqual(download_filename('Chapter 1: Intro', 'application/pdf'), 'chapter_1__intro.pdf')
        self.assertEqual(download_filename('Clip', 'application/octet-stream', 'video'), 'clip.mp4')
        self.assertEqual(download_filename('', 'text/plain'), 'download.txt')

    def test_resolve_file_url(self):
        cloudinary = 'https://res.cloudinary.com/demo/raw/upload/notes.pdf'
        self.assertEqual(resolve_file_url('http://api.test', cloudinary), cloudinary)
        self.assertEqual(resolve_file_url('http://api.test', '/uploads/a.pdf'), 'http://api.test/uploads/a.pdf')
        self.assertEqual(resolve_file_url('http://api.test', 'uploads/a.pdf'), 'http://api.test/uploads/a.pdf')
        self.assertIsNone(resolve_file_url('http://api.test', None))

    def test_add_query_param(self):
        self.assertEqual(add_query_param('http://x/a.pdf', 'fl_attachment', 'true'), 'http://x/a.pdf?fl_attachment=true')
        self.assertEqual(add_query_param('http://x/a.pdf?v=1', 'fl_attachment', 'true'), 'http://x/a.pdf?v=1&fl_attachment=true')


class TestTeacherFields(unittest.TestCase):
    def test_split_full_name(self):
        self.assertEqual(split_full_name('Ana María López'), ('Ana', 'María López'))
        self.assertEqual(split_full_name('Ana'), ('Ana', 'Teacher'))

    def test_split_subjects(self):
        self.assertEqual(split_subjects('Math, Physics ,, Chemistry'), ['Math', 'Physics', 'Chemistry'])
        self.assertEqual(split_subjects(['Math', ' ']), ['Math'])

    def test_ensure_json_serializable(self):
        data = ensure_json_serializable({'when': datetime(2024, 1, 1), 'tags': {'a'}})
        self.assertEqual(data, {'when': '2024-01-01T00:00:00', 'tags': ['a']})


if __name__ == '__main__':
    unittest.main()
