# tests/test_auth.py

import re
import time as reloj
from datetime import datetime, timedelta

import pytest
from django.contrib.auth.tokens import default_token_generator
from django.core import mail
from django.core.cache import cache
from django.test import Client
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode

from apps.core.auth_service import auth_service
from tests.conftest import PASSWORD, crear_perfil

pytestmark = pytest.mark.django_db


def _login(client, email, password):
    return client.post('/login/', {'email': email, 'password': password})


def test_login_redirige_a_la_pagina_del_rol(director):
    response = _login(Client(), 'DIRECTOR@norte.test', PASSWORD)
    assert response.status_code == 302
    assert response.url == '/director/'


def test_login_respeta_next_seguro(director):
    client = Client()
    response = client.post('/login/?next=/reportes/estudiantes/csv/', {'email': director.email, 'password': PASSWORD})
    assert response.url == '/reportes/estudiantes/csv/'

    client = Client()
    response = client.post('/login/?next=https://malicioso.test/', {'email': director.email, 'password': PASSWORD})
    assert response.url == '/director/'


def test_credenciales_invalidas(director):
    response = _login(Client(), director.email, 'incorrecta')
    assert response.status_code == 200
    assert 'Credenciales inválidas' in response.content.decode()


def test_bloqueo_por_intentos_fallidos(director, settings):
    client = Client()
    for _ in range(settings.COMPAS_MAX_LOGIN_ATTEMPTS):
        _login(client, director.email, 'incorrecta')

    response = _login(client, director.email, PASSWORD)

    assert response.status_code == 200
    assert 'Cuenta bloqueada temporalmente' in response.content.decode()


def test_login_exitoso_reinicia_los_intentos(director):
    client = Client()
    _login(client, director.email, 'incorrecta')
    assert cache.get(auth_service._clave_intentos(director.email)) == 1

    _login(client, director.email, PASSWORD)

    assert cache.get(auth_service._clave_intentos(director.email)) is None


def test_cuenta_inactiva_no_inicia_sesion(director):
    director.status = 'inactive'
    director.save()

    response = _login(Client(), director.email, PASSWORD)

    assert response.status_code == 200
    assert 'Tu cuenta está inactiva' in response.content.decode()


def test_cuenta_eliminada_no_inicia_sesion(director):
    director.eliminar()
    response = _login(Client(), director.email, PASSWORD)
    assert 'Credenciales inválidas' in response.content.decode()


def test_logout(cliente_de, director):
    client = cliente_de(director)
    response = client.get('/logout/')
    assert response.url == '/login/'
    assert client.get('/director/').status_code == 302


def test_recuperacion_de_contrasena_completa(director):
    client = Client()
    response = client.post('/forgot-password/', {'email': director.email})

    assert response.status_code == 302
    assert response.url == '/forgot-password/'
    assert len(mail.outbox) == 1

    token = re.search(r'/reset-password/([^/\s]+)/', mail.outbox[0].body).group(1)
    response = client.post(f'/reset-password/{token}/', {
        'nueva_contrasena': 'nueva-clave',
        'confirmar_contrasena': 'nueva-clave',
    })

    assert response.status_code == 302
    assert response.url == '/login/'
    director.refresh_from_db()
    assert director.check_password('nueva-clave')


def test_recuperacion_no_revela_emails(db):
    response = Client().post('/forgot-password/', {'email': 'nadie@compas.test'})
    assert response.status_code == 302
    assert len(mail.outbox) == 0


def test_enlace_invalido(director):
    response = Client().post('/reset-password/basura/', {
        'nueva_contrasena': 'nueva-clave',
        'confirmar_contrasena': 'nueva-clave',
    })
    assert response.url == '/forgot-password/'


def test_enlace_expirado(director, settings):
    uid = urlsafe_base64_encode(force_bytes(director.pk))
    token = default_token_generator.make_token(director)
    vencido = int(reloj.time()) - (settings.COMPAS_PASSWORD_RESET_HOURS * 3600 + 60)

    exito, mensaje = auth_service.validar_token_recuperacion(f'{uid}.{token}.{vencido}', 'nueva-clave')

    assert not exito
    assert mensaje == 'Enlace inválido o expirado'


def test_token_vencido_con_marca_de_tiempo_reciente(director, monkeypatch):
    uid = urlsafe_base64_encode(force_bytes(director.pk))
    with monkeypatch.context() as m:
        m.setattr(default_token_generator, '_now', lambda: datetime.now() - timedelta(hours=3))
        token = default_token_generator.make_token(director)

    exito, mensaje = auth_service.validar_token_recuperacion(f'{uid}.{token}.{int(reloj.time())}', 'nueva-clave')

    assert not exito
    assert mensaje == 'Enlace inválido o expirado'
    director.refresh_from_db()
    assert director.check_password(PASSWORD)


def test_contrasenas_distintas(director):
    response = Client().post('/reset-password/cualquiera/', {
        'nueva_contrasena': 'nueva-clave',
        'confirmar_contrasena': 'otra-clave',
    })
    assert response.status_code == 200
    assert 'Las contraseñas no coinciden' in response.content.decode()


def test_panel_del_director(cliente_de, director, catalogo):
    response = cliente_de(director).get('/director/')

    assert response.status_code == 200
    stats = response.context['stats']
    assert stats['estudiantes'] == 2
    assert stats['profesores'] == 1
    assert stats['encargados'] == 1


def test_panel_refrescado_por_htmx(cliente_de, encargado, catalogo):
    response = cliente_de(encargado).get('/guardian/', HTTP_HX_REQUEST='true')

    assert response.status_code == 200
    assert [t.name for t in response.templates] == ['core/_stats.html']
    assert response.context['stats']['estudiantes'] == 2


def test_pagina_informativa_del_estudiante(cliente_de, academia, catalogo):
    alumno = crear_perfil('lucia@norte.test', 'student', academia)
    lucia = catalogo.estudiantes[0]
    lucia.user = alumno
    lucia.save()

    response = cliente_de(alumno).get('/student-info/')

    assert response.status_code == 200
    assert response.context['fichas'] == [lucia]
    assert 'Piano' in response.content.decode()
