"""
Django signals.

Only one is used: every auth user gets a Profile the moment it is created,
so the counter protocol can always apply deltas to an existing row.

Counters are NOT maintained here. Signals do not fire on QuerySet.update()
or QuerySet.delete(), which is exactly what the services use; keeping the
accounting explicit in the service functions makes each compensating delta
visible next to the ledger write it compensates.
"""

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Profile


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_profile(sender, instance, created, **kwargs):
    if created:
        Profile.objects.get_or_create(user=instance)
