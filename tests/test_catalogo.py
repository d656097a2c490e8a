# tests/test_catalogo.py

import pytest

from apps.academico.models import (
    Cancion, Curso, Estudiante, FechaPeriodo, Horario, Materia, Matricula, Periodo, ProfesorMateria,
)
from tests.conftest import crear_perfil

pytestmark = pytest.mark.django_db


def _json(client, metodo, url, datos=None):
    return getattr(client, metodo)(url, data=datos or {}, content_type='application/json')


# === MATERIAS Y CANCIONES ===

def test_materias_por_academia(cliente_de, director, director_sur, profesor):
    response = _json(cliente_de(director), 'post', '/api/subjects', {'name': ' Piano ', 'description': 'Clásico'})
    assert response.status_code == 201
    materia = response.json()['subject']
    assert materia['name'] == 'Piano'

    assert cliente_de(director_sur).get('/api/subjects').json()['subjects'] == []
    assert cliente_de(director_sur).get(f"/api/subjects/{materia['id']}").status_code == 403
    assert cliente_de(profesor).get(f"/api/subjects/{materia['id']}").status_code == 200
    assert _json(cliente_de(director), 'post', '/api/subjects', {'name': ''}).json()['error'] == 'Name is required'


def test_baja_logica_de_materia(cliente_de, director, academia):
    piano = Materia.objects.create(academy=academia, name='Piano')
    client = cliente_de(director)

    assert client.delete(f'/api/subjects/{piano.id}').json()['message'] == 'Subject deleted successfully'
    assert client.get('/api/subjects').json()['subjects'] == []
    assert client.get(f'/api/subjects/{piano.id}').status_code == 404
    assert Materia.objects.filter(id=piano.id, deleted_at__isnull=False).exists()


def test_canciones(cliente_de, director, profesor):
    client = cliente_de(director)

    response = _json(client, 'post', '/api/songs', {'name': 'Für Elise', 'difficulty_level': 6})
    assert response.json()['error'] == 'Difficulty level must be between 1 and 5'

    response = _json(client, 'post', '/api/songs', {'name': 'Für Elise', 'author': 'Beethoven', 'difficulty_level': 2})
    assert response.status_code == 201
    cancion = response.json()['song']

    response = _json(client, 'patch', f"/api/songs/{cancion['id']}", {'author': ''})
    assert response.json()['song']['author'] is None

    assert _json(client, 'patch', f"/api/songs/{cancion['id']}", {}).json()['error'] == 'No valid fields to update'
    assert [c['name'] for c in cliente_de(profesor).get('/api/songs').json()['songs']] == ['Für Elise']
    assert _json(cliente_de(profesor), 'post', '/api/songs', {'name': 'Otra'}).status_code == 403


# === PERIODOS Y CALENDARIO ===

def test_periodos_unicos_y_restaurables(cliente_de, director):
    client = cliente_de(director)

    assert _json(client, 'post', '/api/periods', {'year': 1999, 'period': 'I'}).json()['error'] == \
        'Year must be between 2000 and 2100'
    assert _json(client, 'post', '/api/periods', {'year': 2025, 'period': 'VII'}).json()['error'] == \
        'Period must be I, II, III, IV, V, or VI'

    creado = _json(client, 'post', '/api/periods', {'year': 2025, 'period': 'II'}).json()['period']
    response = _json(client, 'post', '/api/periods', {'year': 2025, 'period': 'II'})
    assert response.json()['error'] == 'This period already exists'

    client.delete(f"/api/periods/{creado['id']}")
    restaurado = _json(client, 'post', '/api/periods', {'year': 2025, 'period': 'II'})
    assert restaurado.status_code == 201
    assert restaurado.json()['period']['id'] == creado['id']


def test_super_admin_indica_la_academia_del_periodo(cliente_de, super_admin, academia):
    client = cliente_de(super_admin)

    response = _json(client, 'post', '/api/periods', {'year': 2025, 'period': 'I'})
    assert response.json()['error'] == 'academy_id is required when your account is not linked to an academy'

    response = _json(client, 'post', '/api/periods', {'year': 2025, 'period': 'I', 'academy_id': str(academia.id)})
    assert response.json()['period']['academy_id'] == str(academia.id)


def test_fechas_de_clase_crean_el_curso(cliente_de, director, profesor, academia):
    piano = Materia.objects.create(academy=academia, name='Piano')
    periodo = Periodo.objects.create(academy=academia, year=2025, period='III')
    client = cliente_de(director)
    url = f'/api/periods/{periodo.id}/dates'

    response = _json(client, 'post', url, {'dates': [
        {'date_type': 'clase', 'date': '2025-07-01', 'subject_id': str(piano.id)},
    ]})
    assert response.json()['error'] == "profile_id (profesor) is required when date_type is 'clase'"

    response = _json(client, 'post', url, {'dates': [
        {'date_type': 'clase', 'date': '2025-07-01', 'subject_id': str(piano.id), 'profile_id': str(profesor.id)},
    ]})
    assert response.json()['error'] == 'Este profesor no tiene asignada la materia seleccionada'

    ProfesorMateria.objects.create(profile=profesor, subject=piano)
    response = _json(client, 'post', url, {'dates': [
        {'date_type': 'inicio', 'date': '2025-07-01'},
        {'date_type': 'clase', 'date': '2025-07-02', 'subject_id': str(piano.id), 'profile_id': str(profesor.id)},
    ]})

    assert response.status_code == 201
    assert [f['date'] for f in response.json()['dates']] == ['2025-07-01', '2025-07-02']
    assert Curso.objects.filter(profile=profesor, subject=piano, period=periodo).exists()

    fechas = client.get(url).json()['dates']
    assert [f['date_type'] for f in fechas] == ['inicio', 'clase']
    assert fechas[1]['profile']['email'] == profesor.email


def test_tipo_de_fecha_invalido(cliente_de, director, academia):
    periodo = Periodo.objects.create(academy=academia, year=2025, period='I')
    response = _json(cliente_de(director), 'post', f'/api/periods/{periodo.id}/dates', {
        'dates': [{'date_type': 'vacaciones', 'date': '2025-01-01'}],
    })
    assert response.status_code == 400
    assert response.json()['error'].startswith('Invalid date_type')


def test_edicion_y_baja_de_fecha(cliente_de, director, catalogo):
    client = cliente_de(director)
    fecha = catalogo.fechas[0]
    url = f'/api/periods/{catalogo.periodo.id}/dates/{fecha.id}'

    response = _json(client, 'patch', url, {'date_type': 'recital', 'comment': 'Recital de medio año'})
    assert response.json()['date']['date_type'] == 'recital'
    assert response.json()['date']['profile_id'] is None

    assert client.delete(url).json()['message'] == 'Date deleted successfully'
    assert client.delete(url).status_code == 404


def test_fecha_editada_a_clase_exige_materia_y_profesor(cliente_de, director, profesor, academia, catalogo):
    client = cliente_de(director)
    feriado = FechaPeriodo.objects.get(period=catalogo.periodo, date_type='feriado')
    url = f'/api/periods/{catalogo.periodo.id}/dates/{feriado.id}'

    response = _json(client, 'patch', url, {'date_type': 'clase'})
    assert response.status_code == 400
    assert response.json()['error'] == "subject_id is required when date_type is 'clase'"

    response = _json(client, 'patch', url, {'date_type': 'clase', 'subject_id': str(catalogo.materia.id)})
    assert response.status_code == 400
    assert response.json()['error'] == "profile_id (profesor) is required when date_type is 'clase'"

    otro = crear_perfil('otro@norte.test', 'professor', academia)
    response = _json(client, 'patch', url, {
        'date_type': 'clase', 'subject_id': str(catalogo.materia.id), 'profile_id': str(otro.id),
    })
    assert response.status_code == 400
    assert response.json()['error'] == 'Este profesor no tiene asignada la materia seleccionada'

    feriado.refresh_from_db()
    assert feriado.date_type == 'feriado'

    response = _json(client, 'patch', url, {
        'date_type': 'clase', 'subject_id': str(catalogo.materia.id), 'profile_id': str(profesor.id),
    })
    assert response.status_code == 200
    feriado.refresh_from_db()
    assert (feriado.date_type, feriado.subject_id, feriado.profile_id) == ('clase', catalogo.materia.id, profesor.id)


# === CURSOS ===

CURSO_MARZO = {
    'year': 2025,
    'period': 'II',
    'start_date': '2025-03-03',
    'end_date': '2025-03-31',
    'turnos': [{'day_of_week': 1, 'start_time': '16:00', 'end_time': '17:00'}],
}


def test_alta_de_curso_con_rango(cliente_de, director, profesor, academia):
    piano = Materia.objects.create(academy=academia, name='Piano')
    ProfesorMateria.objects.create(profile=profesor, subject=piano)
    datos = {**CURSO_MARZO, 'subject_id': str(piano.id), 'profile_id': str(profesor.id)}

    response = _json(cliente_de(director), 'post', '/api/courses', datos)

    assert response.status_code == 201
    assert response.json()['period_dates_count'] == 5
    assert len(response.json()['schedules']) == 1
    curso = Curso.objects.get(profile=profesor, subject=piano)
    assert curso.fechas_clase().count() == 5
    assert curso.horarios().count() == 1


def test_curso_solapado_no_deja_rastro(cliente_de, director, profesor, academia):
    piano = Materia.objects.create(academy=academia, name='Piano')
    ProfesorMateria.objects.create(profile=profesor, subject=piano)
    datos = {**CURSO_MARZO, 'subject_id': str(piano.id), 'profile_id': str(profesor.id)}
    client = cliente_de(director)
    _json(client, 'post', '/api/courses', datos)

    response = _json(client, 'post', '/api/courses', datos)

    assert response.status_code == 400
    assert 'se solapa con 16:00-17:00' in response.json()['error']
    assert FechaPeriodo.objects.filter(date_type='clase').count() == 5
    assert Horario.objects.count() == 1


def test_curso_con_sesiones_explicitas(cliente_de, director, profesor, academia):
    piano = Materia.objects.create(academy=academia, name='Piano')
    ProfesorMateria.objects.create(profile=profesor, subject=piano)

    response = _json(cliente_de(director), 'post', '/api/courses', {
        'year': 2025,
        'period': 'IV',
        'subject_id': str(piano.id),
        'profile_id': str(profesor.id),
        'session_dates': ['2025-09-02', '2025-09-09', '2025-09-02', 'no-es-fecha'],
        'turnos': [{'day_of_week': 2, 'start_time': '18:00', 'end_time': '19:00'}],
    })

    assert response.status_code == 201
    assert response.json()['period_dates_count'] == 2


def test_validaciones_de_curso(cliente_de, director, profesor, academia):
    piano = Materia.objects.create(academy=academia, name='Piano')
    client = cliente_de(director)
    base = {**CURSO_MARZO, 'subject_id': str(piano.id), 'profile_id': str(profesor.id)}

    response = _json(client, 'post', '/api/courses', {**base, 'turnos': []})
    assert response.json()['error'].startswith('turnos debe ser un array')

    response = _json(client, 'post', '/api/courses', {
        **base, 'turnos': [{'day_of_week': 1, 'start_time': '17:00', 'end_time': '16:00'}],
    })
    assert response.json()['error'] == 'En el turno Lunes: la hora de fin debe ser posterior a la de inicio'

    response = _json(client, 'post', '/api/courses', {
        **base, 'turnos': [{'day_of_week': 1, 'start_time': '06:00', 'end_time': '07:30'}],
    })
    assert response.json()['error'] == 'Las horas deben estar entre 07:00 y 22:00'

    response = _json(client, 'post', '/api/courses', {**base, 'end_date': '2025-03-01'})
    assert response.json()['error'] == 'end_date debe ser posterior o igual a start_date'

    response = _json(client, 'post', '/api/courses', base)
    assert response.json()['error'] == 'Este profesor no tiene asignada la materia seleccionada'


def test_profesor_lista_solo_sus_cursos(cliente_de, profesor, catalogo):
    client = cliente_de(profesor)

    assert client.get('/api/courses').status_code == 403

    response = client.get(f'/api/courses?profile_id={profesor.id}')
    cursos = response.json()['courses']
    assert [c['id'] for c in cursos] == [str(catalogo.curso.id)]
    assert cursos[0]['sessions_count'] == 4


def test_detalle_edicion_y_baja_de_curso(cliente_de, director, catalogo):
    client = cliente_de(director)
    url = f'/api/courses/{catalogo.curso.id}'

    detalle = client.get(url).json()['course']
    assert len(detalle['session_dates']) == 4

    response = _json(client, 'patch', url, {
        'session_dates': ['2025-08-05'],
        'turnos': [{'day_of_week': 2, 'start_time': '10:00', 'end_time': '11:00'}],
    })
    assert response.json()['message'] == 'Curso actualizado'
    assert catalogo.curso.fechas_clase().count() == 1

    assert client.delete(url).json()['message'] == 'Curso eliminado'
    assert not Curso.objects.filter(id=catalogo.curso.id).exists()
    assert catalogo.curso.fechas_clase().count() == 0


def test_mensualidad_del_curso(cliente_de, director, profesor, academia):
    piano = Materia.objects.create(academy=academia, name='Piano')
    ProfesorMateria.objects.create(profile=profesor, subject=piano)
    datos = {**CURSO_MARZO, 'subject_id': str(piano.id), 'profile_id': str(profesor.id)}
    client = cliente_de(director)

    response = _json(client, 'post', '/api/courses', {**datos, 'mensualidad': -5})
    assert response.status_code == 400
    assert response.json()['error'] == 'mensualidad must be a non-negative number'

    assert _json(client, 'post', '/api/courses', {**datos, 'mensualidad': 32000}).status_code == 201
    curso = Curso.objects.get(profile=profesor, subject=piano)
    assert client.get(f'/api/courses/{curso.id}').json()['course']['mensualidad'] == 32000


def test_cambiar_solo_la_mensualidad_conserva_las_sesiones(cliente_de, director, catalogo):
    url = f'/api/courses/{catalogo.curso.id}'
    sesiones = set(catalogo.curso.fechas_clase().values_list('id', flat=True))

    response = _json(cliente_de(director), 'patch', url, {'mensualidad': 27500.5})

    assert response.json()['message'] == 'Curso actualizado'
    catalogo.curso.refresh_from_db()
    assert float(catalogo.curso.mensualidad) == 27500.5
    assert set(catalogo.curso.fechas_clase().values_list('id', flat=True)) == sesiones


def test_sesiones_del_curso(cliente_de, director, director_sur, catalogo):
    url = f'/api/courses/{catalogo.curso.id}/sessions'
    catalogo.fechas[1].eliminar()

    sesiones = cliente_de(director).get(url).json()['sessions']

    assert [s['date'] for s in sesiones] == [
        f'{catalogo.anio}-02-03', f'{catalogo.anio}-03-03', f'{catalogo.anio}-05-26',
    ]
    assert {s['date_type'] for s in sesiones} == {'clase'}
    assert cliente_de(director_sur).get(url).status_code == 403
    assert cliente_de(director).get('/api/courses/no-existe/sessions').status_code == 404


# === TURNOS ===

def test_turnos_y_conflictos(cliente_de, director, profesor):
    client = cliente_de(director)
    datos = {
        'name': 'Piano mañana',
        'profile_id': str(profesor.id),
        'days_of_week': [1, 3],
        'start_time': '09:00',
        'end_time': '10:00',
    }

    response = _json(client, 'post', '/api/schedules', datos)
    assert response.status_code == 201
    assert len(response.json()['schedules']) == 2

    response = _json(client, 'post', '/api/schedules', datos)
    assert response.status_code == 400
    assert response.json()['error'] == 'Failed to create schedules'
    assert len(response.json()['details']) == 2

    response = _json(client, 'post', '/api/schedules', {**datos, 'days_of_week': [3, 5]})
    assert response.status_code == 207
    assert response.json()['message'] == 'Some schedules were created, but some had conflicts'
    assert len(response.json()['warnings']) == 1


def test_turno_con_profesor_de_otra_academia(cliente_de, director, otra_academia):
    ajeno = crear_perfil('ajeno@sur.test', 'professor', otra_academia)
    response = _json(cliente_de(director), 'post', '/api/schedules', {
        'name': 'X', 'profile_id': str(ajeno.id), 'days_of_week': [1], 'start_time': '09:00', 'end_time': '10:00',
    })
    assert response.json()['error'] == 'Professor does not belong to this academy'


def test_edicion_de_turno_detecta_conflictos(cliente_de, director, profesor, academia):
    lunes = Horario.objects.create(
        academy=academia, name='Lunes', profile=profesor, day_of_week=1, start_time='09:00', end_time='10:00'
    )
    martes = Horario.objects.create(
        academy=academia, name='Martes', profile=profesor, day_of_week=2, start_time='09:00', end_time='10:00'
    )

    response = _json(cliente_de(director), 'patch', f'/api/schedules/{martes.id}', {'day_of_week': 1})

    assert response.status_code == 400
    assert response.json() == {'error': 'Schedule conflict detected', 'details': 'Conflicto de horario: Lunes'}


# === ESTUDIANTES Y MATRÍCULAS ===

def test_alta_de_estudiante_con_encargado(cliente_de, director, encargado, encargado_sur):
    client = cliente_de(director)

    response = _json(client, 'post', '/api/students', {'first_name': 'Sofía'})
    assert response.json()['error'] == 'First name and last name are required'

    response = _json(client, 'post', '/api/students', {
        'first_name': 'Sofía', 'last_name': 'Ramos', 'guardian_id': str(encargado_sur.id),
    })
    assert response.status_code == 403

    response = _json(client, 'post', '/api/students', {
        'first_name': 'Sofía', 'last_name': 'Ramos', 'date_of_birth': '2015-04-02',
        'guardian_id': str(encargado.id), 'relationship': 'Madre',
    })
    assert response.status_code == 201
    estudiante = response.json()['student']
    assert estudiante['date_of_birth'] == '2015-04-02'
    assert estudiante['guardian']['email'] == encargado.email


def test_profesor_ve_solo_estudiantes_de_sus_cursos(cliente_de, academia, profesor, catalogo):
    otro = crear_perfil('otro@norte.test', 'professor', academia)

    assert len(cliente_de(profesor).get('/api/students').json()['students']) == 2
    assert cliente_de(otro).get('/api/students').json()['students'] == []


def test_matricula_requiere_curso_existente(cliente_de, director, profesor, catalogo, academia):
    client = cliente_de(director)
    guitarra = Materia.objects.create(academy=academia, name='Guitarra')
    lucia = catalogo.estudiantes[0]
    datos = {
        'student_id': str(lucia.id),
        'subject_id': str(guitarra.id),
        'period_id': str(catalogo.periodo.id),
        'profile_id': str(profesor.id),
    }

    response = _json(client, 'post', '/api/course-registrations', datos)
    assert response.json()['error'] == 'El curso (profesor, materia, periodo) no existe'

    response = _json(client, 'post', '/api/course-registrations', {**datos, 'subject_id': str(catalogo.materia.id)})
    assert response.json()['error'] == 'Este estudiante ya está matriculado en este curso'

    lucia.enrollment_status = 'retirado'
    lucia.save()
    response = _json(client, 'post', '/api/course-registrations', datos)
    assert response.json()['error'] == 'Student is withdrawn'


def test_matricula_con_canciones(cliente_de, director, profesor, academia, catalogo):
    sofia = Estudiante.objects.create(academy=academia, first_name='Sofía', last_name='Ramos')
    cancion = Cancion.objects.create(academy=academia, name='Minueto')

    response = _json(cliente_de(director), 'post', '/api/course-registrations', {
        'student_id': str(sofia.id),
        'subject_id': str(catalogo.materia.id),
        'period_id': str(catalogo.periodo.id),
        'profile_id': str(profesor.id),
        'song_ids': [str(cancion.id)],
    })

    assert response.status_code == 201
    matricula = Matricula.objects.get(id=response.json()['courseRegistration']['id'])
    assert list(matricula.songs.all()) == [cancion]


def test_listado_de_matriculas_del_profesor(cliente_de, academia, profesor, catalogo):
    otro = crear_perfil('otro@norte.test', 'professor', academia)

    response = cliente_de(profesor).get('/api/course-registrations')
    assert len(response.json()['courseRegistrations']) == 2
    assert response.json()['courseRegistrations'][0]['songs_count'] == 0

    assert cliente_de(otro).get('/api/course-registrations').json()['courseRegistrations'] == []
    assert cliente_de(otro).get(f'/api/course-registrations?course_id={catalogo.curso.id}').status_code == 403


def test_edicion_de_matricula(cliente_de, profesor, academia, catalogo):
    url = f'/api/course-registrations/{catalogo.matriculas[0].id}'
    otro = crear_perfil('otro@norte.test', 'professor', academia)

    assert cliente_de(otro).get(url).status_code == 403
    assert cliente_de(profesor).get(url).json()['courseRegistration']['songs'] == []
    assert _json(cliente_de(profesor), 'patch', url, {'status': 'completed'}).status_code == 403


def test_director_cambia_estado_de_matricula(cliente_de, director, catalogo):
    url = f'/api/course-registrations/{catalogo.matriculas[0].id}'
    client = cliente_de(director)

    assert _json(client, 'patch', url, {'status': 'pausada'}).json()['error'] == 'Invalid status'
    assert _json(client, 'patch', url, {'status': 'completed'}).json()['courseRegistration']['status'] == 'completed'
    assert client.delete(url).json()['message'] == 'Course registration deleted'
    assert client.get(url).status_code == 404
