"""
Management command to add a user to the operator organization.

The only way to create the first operator; there is no HTTP surface for it.
"""
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.organizations.models import Membership, Organization
from apps.rbac.models import User
from apps.rbac.roles import Role


class Command(BaseCommand):
    help = 'Grant ops access by adding a user to the operator organization'

    def add_arguments(self, parser):
        parser.add_argument('email', type=str, help='User email address')
        parser.add_argument(
            '--name',
            type=str,
            default='',
            help='Display name used when the user mirror does not exist yet',
        )
        parser.add_argument(
            '--create-user',
            action='store_true',
            help='Create the user mirror if it does not exist',
        )

    def handle(self, *args, **options):
        email = User.objects.normalize_email(options['email'])
        if not email:
            raise CommandError('An email address is required')

        ops_org = Organization.objects.filter(id=settings.OPS_ORGANIZATION_ID).first()
        if ops_org is None:
            raise CommandError(
                'Operator organization does not exist. Run migrations first.'
            )

        with transaction.atomic():
            user = User.objects.by_email(email)
            if user is None:
                if not options['create_user']:
                    raise CommandError(
                        f'User not found: {email}. Use --create-user to create the mirror.'
                    )
                user, _ = User.objects.get_or_create_mirror(email, name=options['name'])
                self.stdout.write(f'Created user: {user.email}')

            membership, created = Membership.objects.get_or_create(
                organization=ops_org,
                user=user,
                defaults={'role': Role.OPS},
            )
            promoted = not created and membership.role != Role.OPS
            if promoted:
                membership.role = Role.OPS
                membership.save(update_fields=['role', 'updated_at'])

        if created or promoted:
            self.stdout.write(self.style.SUCCESS(f'✓ Granted ops access to {user.email}'))
        else:
            self.stdout.write(self.style.WARNING(f'{user.email} already has ops access'))
