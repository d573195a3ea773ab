import unittest
import sys
import os

import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from main import create_app
from config import TestingConfig
from tests.api_fakes import fake_response, install_api, sign_in, called_urls

SUBJECTS = {'success': True, 'data': [{'id': 5, 'name': 'Mathematics', 'classLevel': 10, 'isVisible': True}]}
CHAPTERS = {'success': True, 'data': [{'id': 50, 'title': 'Algebra', 'subjectId': 5}]}
CONTENT = {'success': True, 'data': [{
    'id': 201, 'title': 'Week 1', 'contentType': 'document', 'fileUrl': '/uploads/week1.pdf', 'approved': True
}]}


class TeacherRoutesTestCase(unittest.TestCase):
    def setUp(self):
        self.app = create_app(TestingConfig)
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()
        sign_in(self.client, 'teacher')

    def tearDown(self):
        self.app_context.pop()

    def navigate(self, **state):
        with self.client.session_transaction() as sess:
            sess['teacherNavigation'] = state


class TestTeacherDashboard(TeacherRoutesTestCase):
    def test_requires_teacher_session(self):
        client = self.app.test_client()
        http = install_api(self.app)

        response = client.get('/teacher/dashboard')

        self.assertTrue(response.headers['Location'].endswith('/auth/teacher-login'))
        http.request.assert_not_called()

    def test_classes_are_static(self):
        http = install_api(self.app)

        data = self.client.get('/teacher/dashboard').get_json()['data']

        self.assertEqual([c['classLevel'] for c in data['items']], [9, 10, 11, 12])
        http.request.assert_not_called()

    def test_select_class_and_subject(self):
        http = install_api(self.app, fake_response(200, SUBJECTS), fake_response(200, SUBJECTS),
                           fake_response(200, CHAPTERS))

        data = self.client.post('/teacher/dashboard/select', json={'level': 'classes', 'id': 10}).get_json()['data']
        self.assertEqual(data['items'][0]['name'], 'Mathematics')

        data = self.client.post('/teacher/dashboard/select', json={'level': 'subjects', 'id': 5}).get_json()['data']

        self.assertEqual(data['navigation']['selectedSubject'], {'id': 5, 'name': 'Mathematics'})
        self.assertEqual(data['items'][0]['status'], 'not-started')
        self.assertEqual(data['items'][0]['statusLabel'], 'Not Started')
        self.assertEqual(called_urls(http), [
            ('GET', 'http://api.test/api/teachers/subjects/10'),
            ('GET', 'http://api.test/api/teachers/subjects/10'),
            ('GET', 'http://api.test/api/teachers/chapters/5'),
        ])

    def test_create_subject_in_selected_class(self):
        self.navigate(selectedClass=10)
        http = install_api(self.app, fake_response(201, {'success': True, 'data': {'id': 6}}),
                           fake_response(200, SUBJECTS))

        response = self.client.post('/teacher/subjects', json={'name': ' Physics ', 'description': 'Forces'})

        self.assertEqual(response.get_json()['message'], 'Subject created successfully!')
        self.assertEqual(http.request.call_args_list[0].kwargs['json'],
                         {'name': 'Physics', 'classLevel': 10, 'description': 'Forces'})

    def test_create_chapter_network_failure(self):
        self.navigate(selectedClass=10, selectedSubject={'id': 5, 'name': 'Mathematics'})
        http = install_api(self.app)
        http.request.side_effect = requests.exceptions.ConnectionError()

        response = self.client.post('/teacher/chapters', json={'name': 'Geometry'})

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.get_json()['message'], 'Unable to create chapter. Please try again.')
        self.assertEqual(http.request.call_count, 1)

    def test_create_chapter_requires_subject(self):
        self.navigate(selectedClass=10)
        response = self.client.post('/teacher/chapters', json={'name': 'Geometry'})
        self.assertEqual(response.status_code, 400)


class TestVisibilityAndStatus(TeacherRoutesTestCase):
    def test_hide_subject(self):
        self.navigate(selectedClass=10)
        http = install_api(self.app, fake_response(200, SUBJECTS), fake_response(200, {'success': True}))

        response = self.client.post('/teacher/subjects/5/visibility')

        data = response.get_json()
        self.assertEqual(data['data'], {'id': 5, 'isVisible': False})
        self.assertEqual(data['message'], 'Subject is now hidden from students')
        patch_call = http.request.call_args_list[1]
        self.assertEqual(patch_call.args, ('PATCH', 'http://api.test/api/teachers/subjects/5/visibility'))
        self.assertEqual(patch_call.kwargs['json'], {'isVisible': False})

    def test_failed_toggle_keeps_previous_value(self):
        self.navigate(selectedClass=10)
        install_api(self.app, fake_response(200, SUBJECTS), fake_response(500, {}))

        response = self.client.post('/teacher/subjects/5/visibility')

        self.assertEqual(response.status_code, 502)
        data = response.get_json()
        self.assertEqual(data['message'], 'Failed to update subject visibility')
        self.assertEqual(data['details'], {'id': 5, 'isVisible': True})

    def test_unknown_level_is_not_found(self):
        response = self.client.post('/teacher/modules/5/visibility')
        self.assertEqual(response.status_code, 404)

    def test_chapter_status_cycles(self):
        self.navigate(selectedClass=10, selectedSubject={'id': 5, 'name': 'Mathematics'})
        install_api(self.app, fake_response(200, CHAPTERS))

        first = self.client.post('/teacher/chapters/50/status').get_json()['data']
        second = self.client.post('/teacher/chapters/50/status').get_json()['data']
        third = self.client.post('/teacher/chapters/50/status').get_json()['data']

        self.assertEqual([first['status'], second['status'], third['status']],
                         ['in-progress', 'completed', 'not-started'])


class TestTeacherDownloads(TeacherRoutesTestCase):
    def setUp(self):
        super().setUp()
        self.navigate(selectedClass=10, selectedSubject={'id': 5, 'name': 'Mathematics'},
                      selectedChapter={'id': 50, 'name': 'Algebra'})

    def test_download_through_proxy(self):
        http = install_api(self.app, fake_response(200, CONTENT),
                           fake_response(200, headers={'Content-Type': 'application/pdf'}, content=b'%PDF'))

        response = self.client.post('/teacher/content/201/download')

        self.assertEqual(response.status_code, 200)
        self.assertIn('week_1.pdf', response.headers['Content-Disposition'])
        proxy = http.request.call_args_list[1]
        self.assertEqual(proxy.args, ('GET', 'http://api.test/api/download/proxy'))
        self.assertEqual(proxy.kwargs['params'],
                         {'url': 'http://api.test/uploads/week1.pdf', 'filename': 'week_1.pdf'})
        self.assertEqual(proxy.kwargs['headers']['Authorization'], 'Bearer opaque-token')

    def test_proxy_failure_redirects_to_file(self):
        install_api(self.app, fake_response(200, CONTENT), fake_response(502))

        response = self.client.post('/teacher/content/201/download')

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.headers['Location'], 'http://api.test/uploads/week1.pdf?fl_attachment=true')

    def test_view_document(self):
        install_api(self.app, fake_response(200, CONTENT))

        data = self.client.post('/teacher/content/201/view').get_json()['data']

        self.assertEqual(data['document']['url'], 'http://api.test/uploads/week1.pdf')
        self.assertIsNone(data['document']['viewerUrl'])


if __name__ == '__main__':
    unittest.main()
