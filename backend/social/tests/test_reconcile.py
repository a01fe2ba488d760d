from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from social.counters import reconcile_counters
from social.graph import follow_user
from social.models import Post, Profile
from social.services import like_post, upsert_rating

from .helpers import fresh, make_post, make_user, profile_of


class ReconcileCountersTestCase(TestCase):

    def setUp(self):
        self.author = make_user('author')
        self.fan = make_user('fan')
        self.post = make_post(self.author)
        like_post(self.fan, self.post.id)
        upsert_rating(self.fan, self.post.id, 4)
        follow_user(self.fan, self.author.id)

    def test_consistent_store_reports_nothing(self):
        drift = reconcile_counters()

        self.assertEqual(drift, {'posts': {}, 'profiles': {}})

    def test_drift_is_repaired(self):
        Post.objects.filter(id=self.post.id).update(likes_count=7, rating_avg=1.0)
        Profile.objects.filter(user_id=self.author.id).update(followers_count=0, posts_count=3)

        drift = reconcile_counters()

        self.assertEqual(drift['posts'][self.post.id]['likes_count'], (7, 1))
        self.assertEqual(drift['posts'][self.post.id]['rating_avg'], (1.0, 4.0))
        self.assertEqual(drift['profiles'][self.author.id]['posts_count'], (3, 1))
        post = fresh(self.post)
        self.assertEqual(post.likes_count, 1)
        self.assertEqual(post.rating_avg, 4.0)
        self.assertEqual(profile_of(self.author).followers_count, 1)

    def test_dry_run_writes_nothing(self):
        Post.objects.filter(id=self.post.id).update(likes_count=7)

        drift = reconcile_counters(dry_run=True)

        self.assertIn(self.post.id, drift['posts'])
        self.assertEqual(fresh(self.post).likes_count, 7)

    def test_management_command(self):
        Post.objects.filter(id=self.post.id).update(comments_count=2)
        out = StringIO()

        call_command('reconcile_counters', stdout=out)

        self.assertIn(f'post {self.post.id}: comments_count 2 -> 0', out.getvalue())
        self.assertEqual(fresh(self.post).comments_count, 0)
