import json
import time
import unittest
import sys
import os

import jwt

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from src.shared.session import SessionContext, token_expired

SIGNING_KEY = 'test-signing-key-for-session-tests-0123456789'


class TestRoleSession(unittest.TestCase):
    def setUp(self):
        self.storage = {}
        self.context = SessionContext(self.storage)

    def test_store_uses_role_prefixed_keys(self):
        self.context.teacher.store({'id': 1, 'role': 'teacher'}, 'access', 'refresh')

        self.assertEqual(json.loads(self.storage['teacherUser'])['id'], 1)
        self.assertEqual(self.storage['teacherAccessToken'], 'access')
        self.assertEqual(self.storage['teacherRefreshToken'], 'refresh')
        self.assertFalse(self.context.student.is_present)
        self.assertTrue(self.context.teacher.is_present)

    def test_clear_removes_only_the_role_keys(self):
        self.context.student.store({'id': 1}, 'a', 'r')
        self.context.admin.store({'id': 2}, 'b', 'r2')
        self.storage['studentNavigation'] = {'view': 'classes'}

        self.context.student.clear()

        self.assertNotIn('user', self.storage)
        self.assertNotIn('accessToken', self.storage)
        self.assertNotIn('refreshToken', self.storage)
        self.assertEqual(self.storage['adminAccessToken'], 'b')
        self.assertIn('studentNavigation', self.storage)

    def test_missing_refresh_token_is_removed(self):
        self.storage['refreshToken'] = 'old'
        self.context.student.store({'id': 1}, 'a')
        self.assertNotIn('refreshToken', self.storage)

    def test_unparsable_user_raises(self):
        self.storage['user'] = '{not json'
        with self.assertRaises(ValueError):
            self.context.student.user
        self.storage['user'] = '[1, 2]'
        with self.assertRaises(ValueError):
            self.context.student.user


class TestTokenExpiry(unittest.TestCase):
    def test_expired_and_valid_tokens(self):
        expired = jwt.encode({'exp': int(time.time()) - 60}, SIGNING_KEY, algorithm='HS256')
        valid = jwt.encode({'exp': int(time.time()) + 3600}, SIGNING_KEY, algorithm='HS256')
        self.assertTrue(token_expired(expired))
        self.assertFalse(token_expired(valid))

    def test_opaque_tokens_are_left_to_the_api(self):
        self.assertFalse(token_expired('opaque-token'))
        self.assertFalse(token_expired(jwt.encode({'sub': '1'}, SIGNING_KEY, algorithm='HS256')))

    def test_missing_token_counts_as_expired(self):
        self.assertTrue(token_expired(None))


if __name__ == '__main__':
    unittest.main()
