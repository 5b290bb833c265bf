"""
Creates a citizen's wallet together with the account.
"""

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Wallet


@receiver(post_save, sender=settings.AUTH_USER_MODEL, dispatch_uid="wallet_create_for_citizen")
def create_wallet_for_citizen(sender, instance, created, **kwargs):
    from accounts.models import UserRole

    if created and instance.role == UserRole.CITIZEN:
        Wallet.objects.get_or_create(user=instance)
