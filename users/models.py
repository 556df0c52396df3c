from django.db import models
from django.contrib.auth.models import User
from django.core.cache import cache
from django.db.models.signals import post_save
from django.dispatch import receiver


class Profile(models.Model):
    OWNER = "owner"
    STAFF = "staff"

    ROLE_CHOICES = [
        (OWNER, "Owner"),
        (STAFF, "Staff"),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="profile")
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=STAFF)

    def __str__(self):
        return f"{self.user.username} - {self.role}"

    @property
    def is_owner(self):
        return self.role == self.OWNER


def identity_cache_key(user_id):
    return f"identity:role:{user_id}"


# SIGNALS: auto-create Profile for new users
@receiver(post_save, sender=User)
def create_user_profile(sender, instance, created, **kwargs):
    if created:
        Profile.objects.get_or_create(user=instance)


@receiver(post_save, sender=Profile)
def forget_cached_role(sender, instance, **kwargs):
    # role changes must be visible on the very next request
    cache.delete(identity_cache_key(instance.user_id))
