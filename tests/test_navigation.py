import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from src.shared.exceptions import NavigationError
from src.shared.navigation import DrillDownNavigator, NavigationLevel

CONTENT = [
    {'id': 1, 'title': 'Algebra basics', 'contentType': 'video', 'teacher': {'firstName': 'Marta', 'lastName': 'Ruiz'}},
    {'id': 2, 'title': 'Algebra notes', 'contentType': 'pdf', 'teacher': {'firstName': 'Luis', 'lastName': 'Paz'}},
    {'id': 3, 'title': 'Exercises', 'contentType': 'document', 'teacher': {'firstName': 'Marta', 'lastName': 'Ruiz'}},
]


class TestDrillDownNavigator(unittest.TestCase):
    def setUp(self):
        self.navigator = DrillDownNavigator()

    def drill_to_content(self):
        self.navigator.select('classes', 10)
        self.navigator.select('subjects', 'math')
        self.navigator.select('chapters', 'ch-1')

    def test_view_follows_selections(self):
        self.assertEqual(self.navigator.current_view, NavigationLevel.CLASSES)
        self.navigator.select('classes', 10)
        self.assertEqual(self.navigator.current_view, NavigationLevel.SUBJECTS)
        self.navigator.select('subjects', 'math')
        self.assertEqual(self.navigator.current_view, NavigationLevel.CHAPTERS)
        self.navigator.select('chapters', 'ch-1')
        self.assertEqual(self.navigator.current_view, NavigationLevel.CONTENT)

    def test_chapter_requires_subject(self):
        self.navigator.select('classes', 10)
        with self.assertRaises(NavigationError):
            self.navigator.select('chapters', 'ch-1')

    def test_selecting_class_clears_deeper_selections(self):
        self.drill_to_content()
        self.navigator.select('classes', 11)
        self.assertEqual(self.navigator.selected_class, 11)
        self.assertIsNone(self.navigator.selected_subject)
        self.assertIsNone(self.navigator.selected_chapter)

    def test_back_to_subjects_clears_subject_and_chapter(self):
        self.drill_to_content()
        self.navigator.set_content_filter('video')
        self.navigator.search('algebra')

        self.navigator.back('subjects')

        self.assertEqual(self.navigator.current_view, NavigationLevel.SUBJECTS)
        self.assertEqual(self.navigator.selected_class, 10)
        self.assertIsNone(self.navigator.selected_subject)
        self.assertEqual(self.navigator.search_term, '')
        self.assertEqual(self.navigator.content_filter, 'all')

    def test_back_to_classes_clears_subject_and_chapter(self):
        self.navigator.select('classes', 10)
        self.navigator.select('subjects', 'math')

        self.navigator.back('classes')

        self.assertEqual(self.navigator.current_view, NavigationLevel.CLASSES)
        self.assertIsNone(self.navigator.selected_class)
        self.assertIsNone(self.navigator.selected_subject)
        self.assertIsNone(self.navigator.selected_chapter)

    def test_back_to_classes_from_content(self):
        self.drill_to_content()

        self.navigator.back('classes')

        self.assertIsNone(self.navigator.selected_subject)
        self.assertIsNone(self.navigator.selected_chapter)
        self.assertEqual(self.navigator.content_filter, 'all')

    def test_forward_selection_resets_search(self):
        self.navigator.search('ten')
        self.navigator.select('classes', 10)
        self.assertEqual(self.navigator.search_term, '')

        self.navigator.search('math')
        self.navigator.select('subjects', 'math')
        self.assertEqual(self.navigator.search_term, '')

        self.navigator.search('intro')
        self.navigator.select('chapters', 'ch-1')
        self.assertEqual(self.navigator.search_term, '')

    def test_subject_without_class_is_rejected(self):
        with self.assertRaises(NavigationError) as ctx:
            self.navigator.select('subjects', 'math')
        self.assertEqual(ctx.exception.message, 'Please select a class first')

    def test_back_cannot_go_deeper(self):
        self.navigator.select('classes', 10)
        with self.assertRaises(NavigationError):
            self.navigator.back('content')

    def test_invalid_level_and_filter(self):
        with self.assertRaises(NavigationError):
            self.navigator.select('modules', 1)
        with self.assertRaises(NavigationError):
            self.navigator.set_content_filter('audio')

    def test_content_filter_and_search(self):
        self.drill_to_content()

        self.navigator.set_content_filter('notes')
        self.assertEqual([i['id'] for i in self.navigator.filter_items(CONTENT)], [2, 3])

        self.navigator.search('marta')
        self.assertEqual([i['id'] for i in self.navigator.filter_items(CONTENT)], [3])

    def test_classes_are_never_filtered(self):
        self.navigator.search('zzz')
        classes = [{'classLevel': 9}, {'classLevel': 10}]
        self.assertEqual(self.navigator.filter_items(classes), classes)

    def test_subjects_filtered_by_name(self):
        self.navigator.select('classes', 9)
        self.navigator.search('MATH')
        items = [{'id': 1, 'name': 'Mathematics'}, {'id': 2, 'name': 'Physics'}]
        self.assertEqual(self.navigator.filter_items(items), [items[0]])

    def test_round_trip_drops_orphan_selections(self):
        navigator = DrillDownNavigator.from_dict({
            'selectedClass': None,
            'selectedSubject': 'math',
            'selectedChapter': 'ch-1',
            'contentFilter': 'bogus',
        })
        self.assertEqual(navigator.current_view, NavigationLevel.CLASSES)
        self.assertEqual(navigator.content_filter, 'all')

        self.drill_to_content()
        restored = DrillDownNavigator.from_dict(self.navigator.to_dict())
        self.assertEqual(restored.to_dict(), self.navigator.to_dict())
        self.assertEqual(restored.to_dict()['view'], 'content')


if __name__ == '__main__':
    unittest.main()
