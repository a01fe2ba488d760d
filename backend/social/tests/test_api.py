"""
HTTP-level tests: status codes, error body format, pagination envelope.
"""
import importlib

from django.test import SimpleTestCase
from django.urls import resolve
from rest_framework import status
from rest_framework.test import APITestCase

from social.credentials import issue_tokens
from social.models import Post

from .helpers import make_post, make_user


class ApiTestCase(APITestCase):

    def setUp(self):
        self.alice = make_user('alice')
        self.bob = make_user('bob')
        self.post = make_post(self.bob, tags=['denim'])

    def login(self, user):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {issue_tokens(user).access}')

    def assertError(self, response, status_code, error):
        self.assertEqual(response.status_code, status_code, response.data)
        self.assertEqual(response.data['error'], error)
        self.assertEqual(response.data['status_code'], status_code)
        self.assertIn('message', response.data)
        self.assertIn('details', response.data)

    def test_register_and_me(self):
        response = self.client.post('/api/auth/register/', {
            'username': 'newbie', 'email': 'newbie@test.com', 'password': 'secret12',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['token']}")
        me = self.client.get('/api/auth/me/')
        self.assertEqual(me.data['username'], 'newbie')
        self.assertEqual(me.data['email'], 'newbie@test.com')

    def test_invalid_token_is_401(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer garbage')

        response = self.client.get('/api/auth/me/')

        self.assertError(response, status.HTTP_401_UNAUTHORIZED, 'unauthorized')

    def test_anonymous_write_is_rejected(self):
        response = self.client.post(f'/api/posts/{self.post.id}/like/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['status_code'], 401)

    def test_feed_envelope(self):
        response = self.client.get('/api/posts/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        for key in ('data', 'page', 'limit', 'total', 'total_pages', 'has_next', 'has_prev'):
            self.assertIn(key, response.data)
        entry = response.data['data'][0]
        self.assertEqual(entry['tags'], ['denim'])
        self.assertFalse(entry['is_liked'])
        self.assertIsNone(entry['user_rating'])

    def test_like_flow_and_conflict(self):
        self.login(self.alice)
        url = f'/api/posts/{self.post.id}/like/'

        first = self.client.post(url)
        second = self.client.post(url)
        feed = self.client.get('/api/posts/')

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(first.data['likes_count'], 1)
        self.assertError(second, status.HTTP_409_CONFLICT, 'conflict')
        self.assertTrue(feed.data['data'][0]['is_liked'])

        self.assertEqual(self.client.delete(url).data['likes_count'], 0)
        self.assertError(self.client.delete(url), status.HTTP_404_NOT_FOUND, 'not_found')

    def test_follow_self_is_validation_error(self):
        self.login(self.alice)

        response = self.client.post(f'/api/users/{self.alice.id}/follow/')

        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'validation_error')

    def test_follow_returns_follower_count(self):
        self.login(self.alice)

        response = self.client.post(f'/api/users/{self.bob.id}/follow/')
        profile = self.client.get(f'/api/users/{self.bob.id}/')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['followers_count'], 1)
        self.assertTrue(profile.data['is_following'])

    def test_rating_validation_details(self):
        self.login(self.alice)

        response = self.client.post(f'/api/posts/{self.post.id}/rating/', {'score': 9}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('score', response.data['details'])

    def test_update_someone_elses_post_is_forbidden(self):
        self.login(self.alice)

        response = self.client.patch(f'/api/posts/{self.post.id}/', {'description': 'mine now'}, format='json')

        self.assertError(response, status.HTTP_403_FORBIDDEN, 'forbidden')
        self.assertEqual(Post.objects.get(id=self.post.id).description, 'Outfit of the day')

    def test_create_post(self):
        self.login(self.alice)

        response = self.client.post('/api/posts/', {
            'image_url': '/uploads/posts/new.jpg',
            'description': 'Weekend layers',
            'tags': ['layers', 'autumn'],
            'occasion': 'casual',
            'cloth_items': [{'id': 'c1', 'name': 'Wool coat', 'category': 'Outerwear', 'price': 120}],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['tags'], ['layers', 'autumn'])
        self.assertEqual(response.data['owner']['id'], self.alice.id)
        self.assertEqual(response.data['cloth_items'][0]['name'], 'Wool coat')

    def test_patch_cloth_items_still_require_id_and_name(self):
        self.login(self.bob)
        url = f'/api/posts/{self.post.id}/'

        response = self.client.patch(url, {'cloth_items': [{'shop': 'Zara'}]}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('cloth_items', response.data['details'])
        self.assertEqual(Post.objects.get(id=self.post.id).cloth_items, [])

        response = self.client.patch(url, {
            'cloth_items': [{'id': 'c9', 'name': 'Linen shirt', 'shop': 'Zara'}],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['cloth_items'][0]['name'], 'Linen shirt')

    def test_comment_thread(self):
        self.login(self.alice)
        url = f'/api/posts/{self.post.id}/comments/'

        top = self.client.post(url, {'text': 'Great fit'}, format='json')
        self.client.post(url, {'text': 'Agreed', 'parent': top.data['id']}, format='json')
        listing = self.client.get(url)

        self.assertEqual(listing.data['total'], 1)
        self.assertEqual(listing.data['data'][0]['replies'][0]['text'], 'Agreed')

    def test_notifications_listing(self):
        self.login(self.alice)
        self.client.post(f'/api/posts/{self.post.id}/like/')

        self.login(self.bob)
        response = self.client.get('/api/notifications/')

        self.assertEqual(response.data['unread_count'], 1)
        self.assertEqual(response.data['data'][0]['type'], 'like')

        notification_id = response.data['data'][0]['id']
        self.login(self.alice)
        foreign = self.client.post(f'/api/notifications/{notification_id}/read/')
        self.assertError(foreign, status.HTTP_404_NOT_FOUND, 'not_found')

    def test_missing_post_is_404(self):
        response = self.client.get('/api/posts/999999/')

        self.assertError(response, status.HTTP_404_NOT_FOUND, 'not_found')


class ImportTestCase(SimpleTestCase):
    """The URLconf and the authentication chain import cleanly."""

    def test_modules_import(self):
        for name in ('social.exceptions', 'social.authentication', 'social.views', 'closetfeed.urls'):
            self.assertIsNotNone(importlib.import_module(name))

    def test_api_routes_resolve(self):
        self.assertEqual(resolve('/api/posts/').url_name, 'post-list')
        self.assertEqual(resolve('/api/auth/login/').url_name, 'auth-login')
