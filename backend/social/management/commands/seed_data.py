"""
Management command to seed the database with sample data.

Every write goes through the service layer, so the seeded counters are
exactly what real traffic would have produced.

Usage: python manage.py seed_data
"""

import random
import uuid

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from social.bookmarks import create_collection
from social.comments import create_comment
from social.content import create_post
from social.exceptions import SocialError
from social.graph import follow_user
from social.models import CLOTH_CATEGORIES, Collection, Notification, Post, Profile
from social.services import add_post_to_collection, like_post, upsert_rating

User = get_user_model()


class Command(BaseCommand):
    help = 'Seed the database with sample data for testing'

    def add_arguments(self, parser):
        parser.add_argument(
            '--users',
            type=int,
            default=10,
            help='Number of users to create'
        )
        parser.add_argument(
            '--posts',
            type=int,
            default=20,
            help='Number of posts to create'
        )
        parser.add_argument(
            '--comments',
            type=int,
            default=60,
            help='Number of comments to create'
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding'
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            Notification.objects.all().delete()
            Collection.objects.all().delete()
            Post.objects.all().delete()
            User.objects.filter(is_superuser=False).delete()

        self.stdout.write('Creating users...')
        users = self._create_users(options['users'])

        self.stdout.write('Creating follows...')
        follows = self._create_follows(users)

        self.stdout.write('Creating posts...')
        posts = self._create_posts(users, options['posts'])

        self.stdout.write('Creating comments...')
        comments = self._create_comments(users, posts, options['comments'])

        self.stdout.write('Creating likes, ratings and saves...')
        self._create_interactions(users, posts)

        self.stdout.write(self.style.SUCCESS(
            f'Successfully created:\n'
            f'  - {len(users)} users\n'
            f'  - {follows} follows\n'
            f'  - {len(posts)} posts\n'
            f'  - {len(comments)} comments\n'
            f'  - Likes, ratings, saves and notifications'
        ))

    def _create_users(self, count):
        users = []
        styles = [choice for choice, _ in Profile.Style.choices]
        for i in range(count):
            username = f'user{i+1}'
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(
                    username=username,
                    email=f'{username}@example.com',
                    password='password123'
                )
                Profile.objects.filter(user=user).update(style=random.choice(styles))
            users.append(user)
        return users

    def _create_follows(self, users):
        created = 0
        for user in users:
            for target in random.sample(users, k=min(3, len(users))):
                try:
                    follow_user(user, target.id)
                    created += 1
                except SocialError:
                    pass  # self-follow or already following
        return created

    def _create_posts(self, users, count):
        descriptions = [
            "Sunday brunch look",
            "Office ready in ten minutes",
            "Thrifted everything except the shoes",
            "Layering for the first cold morning",
            "Festival weekend, day two",
            "Monochrome experiment",
        ]
        tag_pool = ['ootd', 'thrift', 'vintage', 'streetwear', 'minimal', 'summer', 'winter', 'denim']
        occasions = [choice for choice, _ in Post.Occasion.choices]
        styles = [choice for choice, _ in Profile.Style.choices]

        posts = []
        for i in range(count):
            cloth_items = [
                {
                    'id': uuid.uuid4().hex[:12],
                    'name': f'{category} piece',
                    'category': category,
                    'price': round(random.uniform(10, 150), 2),
                }
                for category in random.sample(CLOTH_CATEGORIES, k=2)
            ]
            post = create_post(random.choice(users), {
                'image_url': f'/uploads/posts/seed-{i+1}.jpg',
                'description': f"{random.choice(descriptions)} #{i+1}",
                'tags': random.sample(tag_pool, k=3),
                'occasion': random.choice(occasions),
                'style': random.choice(styles),
                'cloth_items': cloth_items,
                'status': Post.Status.DRAFT if random.random() < 0.1 else Post.Status.PUBLISHED,
            })
            posts.append(post)
        return posts

    def _create_comments(self, users, posts, count):
        comment_texts = [
            "Love this combo!",
            "Where is the jacket from?",
            "The colours work so well together.",
            "Saving this for later.",
            "Those shoes though",
            "Need this whole outfit.",
        ]
        comments = []
        for _ in range(count):
            post = random.choice(posts)

            # 30% chance of being a reply to an existing top-level comment
            parent_id = None
            top_level = [c for c in comments if c.post_id == post.id and c.parent_id is None]
            if top_level and random.random() < 0.3:
                parent_id = random.choice(top_level).id

            comments.append(create_comment(
                random.choice(users), post.id, random.choice(comment_texts), parent_id
            ))
        return comments

    def _create_interactions(self, users, posts):
        for user in users:
            collection = create_collection(user, {'title': f"{user.username}'s favourites"})
            for post in random.sample(posts, k=min(len(posts) // 2, len(posts))):
                if post.owner_id == user.id:
                    continue
                try:
                    like_post(user, post.id)
                except SocialError:
                    pass  # Ignore duplicates
                upsert_rating(user, post.id, random.randint(1, 5))
                if random.random() < 0.3:
                    add_post_to_collection(user, collection.id, post.id)
