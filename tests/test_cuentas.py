# tests/test_cuentas.py

import pytest
from django.core import mail
from django.db import IntegrityError
from django.test import Client

from apps.academico.models import EncargadoEstudiante, Estudiante, Materia
from apps.core.auth_service import auth_service
from apps.core.models import Academia, Usuario

pytestmark = pytest.mark.django_db

NUEVA_ACADEMIA = {
    'academyName': 'Academia Centro',
    'academyAddress': 'Zona 1',
    'directorFirstName': 'Ana',
    'directorLastName': 'López',
    'directorEmail': 'Ana@Centro.test',
    'directorPassword': 'clave123',
    'directorPhone': '5555-0000',
}


def _json(client, metodo, url, datos=None):
    return getattr(client, metodo)(url, data=datos or {}, content_type='application/json')


# === ACADEMIAS ===

def test_alta_de_academia_con_director(cliente_de, super_admin):
    response = _json(cliente_de(super_admin), 'post', '/api/academies', NUEVA_ACADEMIA)

    assert response.status_code == 201
    cuerpo = response.json()
    assert cuerpo['success'] is True
    assert cuerpo['academy']['name'] == 'Academia Centro'
    assert cuerpo['director']['email'] == 'ana@centro.test'

    director = Usuario.objects.get(email='ana@centro.test')
    assert director.role == 'director'
    assert str(director.academy_id) == cuerpo['academy']['id']
    assert director.phone == '5555-0000'
    assert len(mail.outbox) == 1


def test_solo_super_admin_crea_academias(cliente_de, director):
    response = _json(cliente_de(director), 'post', '/api/academies', NUEVA_ACADEMIA)
    assert response.status_code == 403
    assert response.json()['error'] == 'Forbidden: Only super admins can create academies'


def test_alta_de_academia_valida_campos(cliente_de, super_admin, director):
    client = cliente_de(super_admin)

    response = _json(client, 'post', '/api/academies', {**NUEVA_ACADEMIA, 'academyName': ' '})
    assert response.status_code == 400
    assert response.json()['error'] == 'Missing required fields'

    response = _json(client, 'post', '/api/academies', {**NUEVA_ACADEMIA, 'directorPassword': '123'})
    assert response.status_code == 400
    assert response.json()['error'] == 'Password must be at least 6 characters'

    response = _json(client, 'post', '/api/academies', {**NUEVA_ACADEMIA, 'directorEmail': director.email})
    assert response.status_code == 400
    assert response.json() == {
        'error': 'Failed to create director user',
        'details': 'A user with this email address has already been registered',
    }
    assert not Academia.objects.filter(name='Academia Centro').exists()


def test_alta_de_academia_se_revierte_si_falla_el_perfil(cliente_de, super_admin, monkeypatch):
    def sin_perfil(*args, **kwargs):
        raise ValueError('perfil rechazado')

    monkeypatch.setattr(auth_service, '_configurar_perfil_director', sin_perfil)

    response = _json(cliente_de(super_admin), 'post', '/api/academies', NUEVA_ACADEMIA)

    assert response.status_code == 500
    assert response.json() == {'error': 'Failed to create director profile', 'details': 'perfil rechazado'}
    assert not Academia.objects.filter(name='Academia Centro').exists()
    assert not Usuario.objects.filter(email='ana@centro.test').exists()


def test_alta_de_academia_se_revierte_si_falla_la_cuenta(cliente_de, super_admin, monkeypatch):
    def cuenta_duplicada(*args, **kwargs):
        raise IntegrityError('email duplicado')

    monkeypatch.setattr(auth_service, '_crear_cuenta_director', cuenta_duplicada)

    response = _json(cliente_de(super_admin), 'post', '/api/academies', NUEVA_ACADEMIA)

    assert response.status_code == 500
    assert response.json() == {'error': 'Failed to create director user', 'details': 'email duplicado'}
    assert not Academia.objects.filter(name='Academia Centro').exists()
    assert not mail.outbox


def test_listado_de_academias(cliente_de, super_admin, director, director_sur):
    response = cliente_de(super_admin).get('/api/academies')

    assert response.status_code == 200
    academias = {a['name']: a for a in response.json()['academies']}
    assert set(academias) == {'Academia Norte', 'Academia Sur'}
    assert academias['Academia Norte']['directors'][0]['email'] == director.email

    assert cliente_de(director).get('/api/academies').status_code == 403


def test_estado_de_academia(cliente_de, super_admin, director, academia):
    url = f'/api/academies/{academia.id}/status'

    response = _json(cliente_de(director), 'patch', url, {'status': 'inactive'})
    assert response.status_code == 403
    assert response.json()['error'] == 'Forbidden: Only super admins can update academy status'

    response = _json(cliente_de(super_admin), 'patch', url, {'status': 'cerrada'})
    assert response.status_code == 400
    assert response.json()['error'] == "Invalid status. Must be 'active' or 'inactive'"

    response = _json(cliente_de(super_admin), 'patch', url, {'status': 'inactive'})
    assert response.json() == {'success': True, 'status': 'inactive'}
    academia.refresh_from_db()
    assert not academia.activa


def test_detalle_de_academia(cliente_de, director, academia, otra_academia):
    client = cliente_de(director)

    assert client.get(f'/api/academies/{academia.id}').json()['academy']['name'] == 'Academia Norte'
    assert client.get(f'/api/academies/{otra_academia.id}').status_code == 403
    assert client.get('/api/academies/no-existe').status_code == 404

    response = _json(client, 'patch', f'/api/academies/{academia.id}', {'name': ''})
    assert response.status_code == 400

    response = _json(client, 'patch', f'/api/academies/{academia.id}', {'phone': '2222-9999'})
    assert response.json()['academy']['phone'] == '2222-9999'


# === PROFESORES ===

def test_alta_de_profesor_con_materias(cliente_de, director, academia, otra_academia):
    piano = Materia.objects.create(academy=academia, name='Piano')
    ajena = Materia.objects.create(academy=otra_academia, name='Violín')

    response = _json(cliente_de(director), 'post', '/api/professors', {
        'first_name': 'Pablo',
        'last_name': 'Ruiz',
        'email': 'pablo@norte.test',
        'password': 'clave123',
        'subject_ids': [str(piano.id), str(ajena.id)],
    })

    assert response.status_code == 201
    profesor = response.json()['professor']
    assert profesor['role'] == 'professor'
    assert profesor['academy_id'] == str(academia.id)
    assert [m['name'] for m in profesor['subjects']] == ['Piano']
    assert response.json()['message'] == 'Professor created successfully'


def test_alta_de_profesor_validaciones(cliente_de, director, super_admin, profesor):
    client = cliente_de(director)

    response = _json(client, 'post', '/api/professors', {'first_name': 'X', 'email': 'x@norte.test'})
    assert response.json()['error'] == 'First name, last name, and email are required'

    response = _json(client, 'post', '/api/professors', {
        'first_name': 'X', 'last_name': 'Y', 'email': profesor.email, 'password': 'clave123',
    })
    assert response.status_code == 400
    assert response.json()['error'] == 'Failed to create user'

    response = _json(cliente_de(super_admin), 'post', '/api/professors', {
        'first_name': 'X', 'last_name': 'Y', 'email': 'x@norte.test', 'password': 'clave123',
    })
    assert response.status_code == 400
    assert response.json()['error'] == 'academy_id is required'


def test_profesores_aislados_por_academia(cliente_de, director_sur, profesor):
    client = cliente_de(director_sur)

    assert client.get('/api/professors').json()['professors'] == []
    assert client.get(f'/api/professors/{profesor.id}').status_code == 403
    assert client.get('/api/professors/no-es-uuid').status_code == 404


def test_profesor_no_gestiona_profesores(cliente_de, profesor):
    assert cliente_de(profesor).get('/api/professors').status_code == 403


def test_edicion_estado_y_baja_de_profesor(cliente_de, director, profesor, academia):
    client = cliente_de(director)
    guitarra = Materia.objects.create(academy=academia, name='Guitarra')

    response = _json(client, 'patch', f'/api/professors/{profesor.id}', {
        'phone': '4444', 'subject_ids': [str(guitarra.id)],
    })
    assert response.json()['professor']['phone'] == '4444'
    assert [m['name'] for m in response.json()['professor']['subjects']] == ['Guitarra']

    response = _json(client, 'patch', f'/api/professors/{profesor.id}/status', {'status': 'inactive'})
    assert response.json() == {'message': 'Professor status updated successfully', 'status': 'inactive'}

    response = client.delete(f'/api/professors/{profesor.id}')
    assert response.json()['message'] == 'Professor deleted successfully'
    profesor.refresh_from_db()
    assert profesor.deleted_at is not None
    assert client.get('/api/professors').json()['professors'] == []


# === ENCARGADOS ===

def test_alta_de_encargado_vincula_estudiantes_libres(cliente_de, director, academia, catalogo):
    libre = Estudiante.objects.create(academy=academia, first_name='Sofía', last_name='Ramos')
    ocupada = catalogo.estudiantes[0]

    response = _json(cliente_de(director), 'post', '/api/guardians', {
        'email': 'padre@norte.test',
        'password': 'clave123',
        'first_name': 'Raúl',
        'student_ids': [str(libre.id), str(ocupada.id)],
        'relationship': 'Padre',
    })

    assert response.status_code == 201
    alumnos = response.json()['guardian']['students']
    assert [a['first_name'] for a in alumnos] == ['Sofía']
    assert alumnos[0]['relationship'] == 'Padre'
    assert EncargadoEstudiante.objects.get(student=ocupada).guardian.email == 'encargado@norte.test'


def test_alta_de_encargado_exige_email_y_password(cliente_de, director):
    response = _json(cliente_de(director), 'post', '/api/guardians', {'email': 'x@norte.test'})
    assert response.status_code == 400
    assert response.json()['error'] == 'Email and password are required'


def test_asignacion_de_estudiantes(cliente_de, director, academia, otra_academia, encargado, catalogo):
    client = cliente_de(director)
    url = f'/api/guardians/{encargado.id}/students'
    nueva = Estudiante.objects.create(academy=academia, first_name='Sofía', last_name='Ramos')
    ajena = Estudiante.objects.create(academy=otra_academia, first_name='Iván', last_name='Soto')

    response = _json(client, 'post', url, {'student_ids': []})
    assert response.json()['error'] == 'student_ids must be a non-empty array'

    response = _json(client, 'post', url, {'student_ids': ['no-es-uuid']})
    assert response.json()['error'] == 'Some students were not found'

    response = _json(client, 'post', url, {'student_ids': [str(ajena.id)]})
    assert response.status_code == 403
    assert response.json()['error'] == 'Some students do not belong to this academy'

    response = _json(client, 'post', url, {'student_ids': [str(catalogo.estudiantes[0].id)]})
    assert response.status_code == 400
    assert response.json() == {
        'error': 'Uno o más estudiantes ya tienen un encargado asignado',
        'details': 'Lucía Castillo',
    }

    response = _json(client, 'post', url, {'student_ids': [str(nueva.id)], 'relationship': 'Tía'})
    assert response.status_code == 201
    assert response.json()['message'] == 'Students assigned successfully'
    vinculo_id = response.json()['assignments'][0]['id']

    assert client.delete(url).json()['error'] == 'assignment_id is required'
    assert client.delete(f'{url}?assignment_id={catalogo.estudiantes[0].id}').status_code == 404

    response = client.delete(f'{url}?assignment_id={vinculo_id}')
    assert response.json()['message'] == 'Student assignment removed successfully'
    assert not EncargadoEstudiante.objects.filter(student=nueva).exists()


def test_encargado_consulta_solo_sus_asignaciones(cliente_de, encargado, encargado_sur, catalogo):
    client = cliente_de(encargado)

    response = client.get(f'/api/guardians/{encargado.id}/students')
    assert response.status_code == 200
    assert len(response.json()['assignments']) == 2

    assert client.get(f'/api/guardians/{encargado_sur.id}/students').status_code == 403
    assert _json(client, 'post', f'/api/guardians/{encargado.id}/students', {'student_ids': ['x']}).status_code == 403


def test_baja_de_encargado_libera_estudiantes(cliente_de, director, encargado, catalogo):
    client = cliente_de(director)

    response = client.delete(f'/api/guardians/{encargado.id}')

    assert response.json()['message'] == 'Guardian deleted successfully'
    assert not EncargadoEstudiante.objects.filter(guardian=encargado).exists()
    assert client.get(f'/api/guardians/{encargado.id}').status_code == 404


def test_estado_de_encargado(cliente_de, director, encargado):
    response = _json(cliente_de(director), 'patch', f'/api/guardians/{encargado.id}/status', {'status': 'inactive'})
    assert response.json() == {'message': 'Guardian status updated successfully', 'status': 'inactive'}


# === DATOS PERSONALES ===

def test_exportacion_de_datos_propios(cliente_de, encargado):
    response = cliente_de(encargado).get('/api/user/data-export')

    assert response.status_code == 200
    assert response['Content-Disposition'].startswith(
        f'attachment; filename="user-data-export-{encargado.id}-'
    )
    cuerpo = response.json()
    assert cuerpo['user']['email'] == encargado.email
    assert cuerpo['profile']['role'] == 'guardian'
    assert cuerpo['profile']['deleted_at'] is None
    assert cuerpo['export_version'] == '1.0'


def test_exportacion_sin_sesion():
    assert Client().get('/api/user/data-export').status_code == 401
