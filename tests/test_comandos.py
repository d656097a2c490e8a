# tests/test_comandos.py

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from apps.contratos.models import Contrato, CuotaContrato
from apps.core.models import Academia, Usuario
from tests.conftest import crear_perfil

pytestmark = pytest.mark.django_db


def test_crear_superadmin():
    out = StringIO()
    call_command('crear_superadmin', '--email=Root@Compas.test', '--password=clave-segura', stdout=out)

    usuario = Usuario.objects.get(email='root@compas.test')
    assert usuario.role == 'super_admin'
    assert usuario.is_superuser
    assert usuario.check_password('clave-segura')
    assert 'creado' in out.getvalue()


def test_promover_cuenta_existente(director):
    out = StringIO()
    call_command('crear_superadmin', f'--email={director.email}', '--password=otra-clave', stdout=out)

    director.refresh_from_db()
    assert director.role == 'super_admin'
    assert director.academy is None
    assert 'promovido' in out.getvalue()


def test_superadmin_con_contrasena_corta():
    with pytest.raises(CommandError):
        call_command('crear_superadmin', '--email=root@compas.test', '--password=123')
    assert not Usuario.objects.exists()


def test_seed_academia():
    out = StringIO()
    call_command('seed_academia', stdout=out)

    academia = Academia.objects.get()
    contrato = Contrato.objects.get()
    assert contrato.academy == academia
    assert CuotaContrato.objects.filter(contract=contrato).count() == 3
    assert Usuario.objects.filter(academy=academia).count() == 3
    assert 'director@demo.compas' in out.getvalue()

    call_command('seed_academia', stdout=StringIO())
    assert Academia.objects.count() == 1


def test_seed_academia_limpiar():
    call_command('seed_academia', stdout=StringIO())
    primera = Academia.objects.get()

    call_command('seed_academia', '--limpiar', stdout=StringIO())

    assert Academia.objects.exclude(id=primera.id).count() == 1
    assert not Academia.objects.filter(id=primera.id).exists()
    assert Contrato.objects.count() == 1


def test_seed_no_toca_otras_academias(academia):
    crear_perfil('otro@norte.test', 'director', academia)
    call_command('seed_academia', '--limpiar', stdout=StringIO())
    assert Usuario.objects.filter(academy=academia).count() == 1
