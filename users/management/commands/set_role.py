from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from users.models import Profile


class Command(BaseCommand):
    help = 'Sets the role (owner or staff) of an existing user'

    def add_arguments(self, parser):
        parser.add_argument('username')
        parser.add_argument('role', choices=[choice for choice, _ in Profile.ROLE_CHOICES])

    def handle(self, *args, **options):
        User = get_user_model()
        try:
            user = User.objects.get(username=options['username'])
        except User.DoesNotExist:
            raise CommandError(f"User '{options['username']}' does not exist")

        profile, _ = Profile.objects.get_or_create(user=user)
        old_role = profile.role
        profile.role = options['role']
        profile.save()

        if old_role == profile.role:
            self.stdout.write(f"- {user.username} is already {profile.role}")
        else:
            self.stdout.write(self.style.SUCCESS(f"✓ {user.username}: {old_role} → {profile.role}"))
