from django.contrib.auth.models import User

from social.content import create_post
from social.models import Post, Profile


def make_user(username, **extra):
    return User.objects.create_user(username, f'{username}@test.com', 'pass1234', **extra)


def make_post(owner, **data):
    data.setdefault('image_url', '/uploads/posts/look.jpg')
    data.setdefault('description', 'Outfit of the day')
    return create_post(owner, data)


def profile_of(user) -> Profile:
    return Profile.objects.get(user_id=user.id)


def fresh(post) -> Post:
    return Post.objects.get(id=post.id)
