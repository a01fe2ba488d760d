from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings

from social import credentials
from social.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from social.graph import block_user
from social.search import get_suggestions, search_posts, search_users
from social.storage import delete_image, public_url, save_image

from .helpers import make_post, make_user, profile_of


class CredentialsTestCase(TestCase):

    def setUp(self):
        self.user, self.tokens = credentials.register({
            'username': 'stylist',
            'email': 'stylist@test.com',
            'password': 'pass1234',
        })

    def test_register_creates_profile_and_tokens(self):
        self.assertTrue(profile_of(self.user).refresh_token_hash)
        self.assertEqual(credentials.user_from_token(self.tokens.access).id, self.user.id)

    def test_duplicate_email_and_username(self):
        with self.assertRaises(ConflictError):
            credentials.register({'username': 'other', 'email': 'STYLIST@test.com', 'password': 'x' * 8})
        with self.assertRaises(ConflictError):
            credentials.register({'username': 'stylist', 'email': 'new@test.com', 'password': 'x' * 8})

    def test_login(self):
        user, tokens = credentials.login('stylist@test.com', 'pass1234')

        self.assertEqual(user.id, self.user.id)
        self.assertEqual(credentials.decode_token(tokens.access)['type'], 'access')

    def test_login_wrong_password(self):
        with self.assertRaises(UnauthorizedError):
            credentials.login('stylist@test.com', 'wrong')
        with self.assertRaises(UnauthorizedError):
            credentials.login('nobody@test.com', 'pass1234')

    def test_token_kinds_are_not_interchangeable(self):
        with self.assertRaises(UnauthorizedError):
            credentials.user_from_token(self.tokens.refresh)
        with self.assertRaises(UnauthorizedError):
            credentials.user_from_token(self.tokens.access, credentials.REFRESH)
        with self.assertRaises(UnauthorizedError):
            credentials.decode_token('not-a-token')

    def test_refresh_rotates(self):
        rotated = credentials.refresh(self.tokens.refresh)

        self.assertNotEqual(rotated.refresh, self.tokens.refresh)
        with self.assertRaises(UnauthorizedError):
            credentials.refresh(self.tokens.refresh)

    def test_logout_invalidates_refresh(self):
        credentials.logout(self.user)

        with self.assertRaises(UnauthorizedError):
            credentials.refresh(self.tokens.refresh)

    def test_update_profile(self):
        credentials.update_profile(self.user, {'bio': 'Vintage lover', 'style': 'Vintage', 'first_name': 'Ada'})

        self.user.refresh_from_db()
        self.assertEqual(self.user.first_name, 'Ada')
        self.assertEqual(profile_of(self.user).style, 'Vintage')

    def test_update_profile_taken_username(self):
        make_user('taken')

        with self.assertRaises(ConflictError):
            credentials.update_profile(self.user, {'username': 'taken'})


class StorageTestCase(TestCase):

    def image(self, name='look.png', content_type='image/png', size=64):
        return SimpleUploadedFile(name, b'\x89PNG' + b'0' * size, content_type=content_type)

    def test_save_and_delete(self):
        stored = save_image(self.image(), 'avatar')

        self.assertTrue(stored.url.startswith('/uploads/avatars/'))
        self.assertTrue(stored.filename.endswith('look.png'))

        delete_image(stored.filename)
        with self.assertRaises(NotFoundError):
            delete_image(stored.filename)

    def test_rejects_wrong_type(self):
        with self.assertRaises(ValidationError):
            save_image(self.image('notes.txt', 'text/plain'))

    def test_rejects_missing_file(self):
        with self.assertRaises(ValidationError):
            save_image(None)

    @override_settings(UPLOAD_MAX_FILE_SIZE=16)
    def test_rejects_large_file(self):
        with self.assertRaises(ValidationError):
            save_image(self.image(size=64))

    @override_settings(FILE_BASE_URL='https://cdn.example.com/')
    def test_public_url(self):
        self.assertEqual(
            public_url('/uploads/posts/1-look.png'),
            'https://cdn.example.com/uploads/posts/1-look.png'
        )
        self.assertEqual(public_url('https://img.example.org/a.png'), 'https://img.example.org/a.png')
        self.assertEqual(public_url(''), '')


class SearchTestCase(TestCase):

    def setUp(self):
        self.alice = make_user('alice')
        self.alina = make_user('alina')
        self.bob = make_user('bob')
        self.summer = make_post(self.alice, description='Linen set', tags=['summer', 'beach'])
        self.denim = make_post(self.bob, description='Summer denim', occasion='casual')
        self.draft = make_post(self.bob, description='summer draft', status='draft')

    def test_search_posts_matches_description_or_tag(self):
        entries = search_posts('summer')

        self.assertEqual({e.post.id for e in entries}, {self.summer.id, self.denim.id})

    def test_search_posts_filters(self):
        entries = search_posts('summer', occasion='casual')
        self.assertEqual([e.post.id for e in entries], [self.denim.id])

        entries = search_posts(tags='beach')
        self.assertEqual([e.post.id for e in entries], [self.summer.id])

    def test_search_users_hides_blocked(self):
        viewer = make_user('viewer')
        block_user(self.alina, viewer.id)

        found = search_users('ali', viewer=viewer)

        self.assertEqual([u.username for u in found], ['alice'])

    def test_suggestions(self):
        suggestions = get_suggestions('al')

        self.assertEqual([u.username for u in suggestions['users']], ['alice', 'alina'])
        self.assertEqual(get_suggestions('be')['tags'], ['beach'])
        self.assertEqual(get_suggestions(''), {'users': [], 'tags': []})
