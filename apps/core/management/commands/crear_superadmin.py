# apps/core/management/commands/crear_superadmin.py

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.core.models import Usuario


class Command(BaseCommand):
    help = 'Crea (o promueve) una cuenta de super administrador'

    def add_arguments(self, parser):
        parser.add_argument('--email', required=True)
        parser.add_argument('--password', required=True)
        parser.add_argument('--first-name', default='')
        parser.add_argument('--last-name', default='')

    @transaction.atomic
    def handle(self, *args, **options):
        email = options['email'].strip().lower()
        if len(options['password']) < 6:
            raise CommandError('La contraseña debe tener al menos 6 caracteres')

        usuario = Usuario.objects.filter(email=email).first()
        if usuario is None:
            usuario = Usuario.objects.crear_perfil(
                email=email,
                password=options['password'],
                role='super_admin',
                first_name=options['first_name'],
                last_name=options['last_name'],
                is_staff=True,
                is_superuser=True,
            )
            self.stdout.write(self.style.SUCCESS(f'✅ Super admin {usuario.email} creado'))
            return

        usuario.role = 'super_admin'
        usuario.academy = None
        usuario.status = 'active'
        usuario.deleted_at = None
        usuario.is_active = True
        usuario.is_staff = True
        usuario.is_superuser = True
        usuario.set_password(options['password'])
        if options['first_name']:
            usuario.first_name = options['first_name']
        if options['last_name']:
            usuario.last_name = options['last_name']
        usuario.save()

        self.stdout.write(self.style.SUCCESS(f'✅ {usuario.email} promovido a super admin'))
