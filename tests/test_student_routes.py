import time
import unittest
import sys
import os

import jwt

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from main import create_app
from config import TestingConfig
from tests.api_fakes import fake_response, install_api, sign_in, called_urls

NOTES_URL = 'https://res.cloudinary.com/demo/raw/upload/algebra.pdf'


def dashboard_body():
    return {
        'success': True,
        'data': {
            'classes': [
                {
                    'classLevel': 10,
                    'isEnrolled': True,
                    'enrollmentCount': 1,
                    'contentCount': 4,
                    'subjects': [{
                        'id': 5,
                        'name': 'Mathematics',
                        'chapters': [{
                            'id': 50,
                            'title': 'Algebra',
                            'content': [
                                {'id': 101, 'title': 'Lesson 1', 'contentType': 'video', 'approved': True,
                                 'youtubeVideoId': 'abc'},
                                {'id': 102, 'title': 'Lesson 2', 'contentType': 'video', 'approved': True},
                                {'id': 103, 'title': 'Algebra Notes', 'contentType': 'pdf', 'approved': True,
                                 'fileUrl': NOTES_URL},
                                {'id': 104, 'title': 'Draft', 'contentType': 'video', 'approved': False},
                            ]
                        }]
                    }]
                },
                {'classLevel': 11, 'subjects': []},
            ]
        }
    }


class StudentRoutesTestCase(unittest.TestCase):
    def setUp(self):
        self.app = create_app(TestingConfig)
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()

    def tearDown(self):
        self.app_context.pop()

    def navigate_to_chapter(self):
        with self.client.session_transaction() as sess:
            sess['studentNavigation'] = {'selectedClass': 10, 'selectedSubject': 5, 'selectedChapter': 50}


class TestSessionGuard(StudentRoutesTestCase):
    def test_missing_session_redirects_without_fetching(self):
        http = install_api(self.app)

        response = self.client.get('/student/dashboard')

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.headers['Location'].endswith('/auth/login'))
        http.request.assert_not_called()

    def test_wrong_role_is_denied(self):
        http = install_api(self.app)
        sign_in(self.client, 'student', user={'id': 1, 'role': 'teacher'})

        response = self.client.get('/student/dashboard')

        self.assertTrue(response.headers['Location'].endswith('/auth/login?error=access_denied'))
        http.request.assert_not_called()

    def test_expired_token_clears_session(self):
        expired = jwt.encode({'exp': int(time.time()) - 10}, 'test-signing-key-for-route-tests-0123456789',
                             algorithm='HS256')
        sign_in(self.client, 'student', token=expired)

        response = self.client.get('/student/dashboard')

        self.assertTrue(response.headers['Location'].endswith('/auth/login?error=session_expired'))
        with self.client.session_transaction() as sess:
            self.assertNotIn('accessToken', sess)
            self.assertNotIn('user', sess)

    def test_unreadable_user_clears_session(self):
        with self.client.session_transaction() as sess:
            sess['user'] = '{not json'
            sess['accessToken'] = 'opaque-token'

        response = self.client.get('/student/dashboard')

        self.assertEqual(response.status_code, 302)
        with self.client.session_transaction() as sess:
            self.assertNotIn('user', sess)

    def test_rejected_token_logs_out(self):
        http = install_api(self.app, fake_response(401, {}))
        sign_in(self.client, 'student')

        response = self.client.get('/student/dashboard')

        self.assertTrue(response.headers['Location'].endswith('/auth/login?error=session_expired'))
        self.assertEqual(http.request.call_count, 1)


class TestDashboard(StudentRoutesTestCase):
    def setUp(self):
        super().setUp()
        sign_in(self.client, 'student')

    def test_classes_view(self):
        http = install_api(self.app, fake_response(200, dashboard_body()))

        response = self.client.get('/student/dashboard')

        self.assertEqual(response.status_code, 200)
        data = response.get_json()['data']
        self.assertEqual(data['navigation']['view'], 'classes')
        self.assertEqual([c['classLevel'] for c in data['items']], [10, 11])
        self.assertEqual(data['items'][0]['subjectCount'], 1)
        self.assertEqual(called_urls(http), [('GET', 'http://api.test/api/students/dashboard')])

    def test_empty_dashboard_message(self):
        install_api(self.app, fake_response(200, {'success': True, 'data': {'classes': []}}))

        data = self.client.get('/student/dashboard').get_json()['data']

        self.assertEqual(data['message'],
                         "You haven't enrolled in any classes yet. Contact your teacher for enrollment.")

    def test_invalid_payload_is_reported(self):
        install_api(self.app, fake_response(200, {'success': True, 'data': {}}))

        response = self.client.get('/student/dashboard')

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.get_json()['details']['attempts'], 3)

    def test_drill_down_to_chapter(self):
        install_api(self.app, fake_response(200, dashboard_body()))

        data = self.client.post('/student/dashboard/select', json={'level': 'classes', 'id': '10'}).get_json()['data']
        self.assertEqual(data['navigation']['view'], 'subjects')
        self.assertEqual(data['items'][0]['counts'], {'total': 3, 'videos': 2, 'notes': 1})

        self.client.post('/student/dashboard/select', json={'level': 'subjects', 'id': 5})
        data = self.client.post('/student/dashboard/select', json={'level': 'chapters', 'id': 50}).get_json()['data']

        self.assertEqual(data['navigation']['view'], 'content')
        self.assertEqual(data['breadcrumb'], {'classLevel': 10, 'subject': 'Mathematics', 'chapter': 'Algebra'})
        self.assertEqual([i['id'] for i in data['items']], [101, 102, 103])

    def test_filter_and_back(self):
        install_api(self.app, fake_response(200, dashboard_body()))
        self.navigate_to_chapter()

        data = self.client.post('/student/dashboard/filter', json={'filter': 'video'}).get_json()['data']
        self.assertEqual([i['id'] for i in data['items']], [101, 102])

        data = self.client.post('/student/dashboard/back', json={'level': 'classes'}).get_json()['data']
        self.assertEqual(data['navigation']['view'], 'classes')
        self.assertEqual(data['navigation']['contentFilter'], 'all')

    def test_missing_selection_falls_back(self):
        install_api(self.app, fake_response(200, dashboard_body()))
        with self.client.session_transaction() as sess:
            sess['studentNavigation'] = {'selectedClass': 12}

        data = self.client.get('/student/dashboard').get_json()['data']

        self.assertEqual(data['navigation']['view'], 'classes')

    def test_invalid_transition(self):
        install_api(self.app, fake_response(200, dashboard_body()))

        response = self.client.post('/student/dashboard/select', json={'level': 'chapters', 'id': 50})

        self.assertEqual(response.status_code, 400)

    def test_enroll_in_first_subject(self):
        http = install_api(self.app, fake_response(200, dashboard_body()))

        response = self.client.post('/student/enroll/10')

        self.assertEqual(response.status_code, 200)
        self.assertIn(('POST', 'http://api.test/api/students/enroll/5'), called_urls(http))

    def test_enroll_without_subjects(self):
        install_api(self.app, fake_response(200, dashboard_body()))

        response = self.client.post('/student/enroll/11')

        self.assertEqual(response.status_code, 404)


class TestContent(StudentRoutesTestCase):
    def setUp(self):
        super().setUp()
        sign_in(self.client, 'student')
        self.navigate_to_chapter()

    def test_video_opens_playlist_and_tracks_progress(self):
        http = install_api(self.app, fake_response(200, dashboard_body()))

        response = self.client.post('/student/content/101/view')

        player = response.get_json()['data']['player']
        self.assertEqual([v['id'] for v in player['playlist']], [101, 102])
        self.assertEqual(player['nextId'], 102)
        self.assertIsNone(player['previousId'])
        progress = http.request.call_args_list[1]
        self.assertEqual(progress.args, ('POST', 'http://api.test/api/students/progress'))
        self.assertEqual(progress.kwargs['json'], {'contentId': 101, 'action': 'start_viewing'})

    def test_progress_failure_does_not_block_viewing(self):
        dashboard = fake_response(200, dashboard_body())
        failure = fake_response(500, {})
        install_api(self.app, dashboard, failure, failure, failure)

        response = self.client.post('/student/content/103/view')

        self.assertEqual(response.status_code, 200)
        document = response.get_json()['data']['document']
        self.assertEqual(document['url'], NOTES_URL)
        self.assertTrue(document['viewerUrl'].startswith('https://docs.google.com/gview?url='))

    def test_unapproved_content_is_not_found(self):
        install_api(self.app, fake_response(200, dashboard_body()))

        response = self.client.post('/student/content/104/view')

        self.assertEqual(response.status_code, 404)

    def test_cloudinary_download_without_token(self):
        http = install_api(
            self.app,
            fake_response(200, dashboard_body()),
            fake_response(200, {'success': True}),
            fake_response(200, headers={'Content-Type': 'application/pdf'}, content=b'%PDF-1.4'),
        )

        response = self.client.post('/student/content/103/download')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, b'%PDF-1.4')
        self.assertIn('algebra_notes.pdf', response.headers['Content-Disposition'])
        download = http.request.call_args_list[2]
        self.assertEqual(download.args, ('GET', NOTES_URL))
        self.assertNotIn('Authorization', download.kwargs['headers'])

    def test_failed_download_offers_direct_link(self):
        install_api(
            self.app,
            fake_response(200, dashboard_body()),
            fake_response(200, {'success': True}),
            fake_response(404),
        )

        response = self.client.post('/student/content/103/download')

        self.assertEqual(response.status_code, 404)
        data = response.get_json()
        self.assertEqual(data['message'], 'Download failed. File not found. Please contact your teacher.')
        self.assertEqual(data['details']['fallbackUrl'], NOTES_URL)


if __name__ == '__main__':
    unittest.main()
