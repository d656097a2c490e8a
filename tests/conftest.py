# tests/conftest.py

from datetime import date
from types import SimpleNamespace

import pytest
from django.core.cache import cache
from django.test import Client
from django.utils import timezone

from apps.academico.models import (
    Curso, EncargadoEstudiante, Estudiante, FechaPeriodo, Materia, Matricula, Periodo, ProfesorMateria,
)
from apps.core.models import Academia, Usuario

PASSWORD = 'secreto123'


@pytest.fixture(autouse=True)
def limpiar_cache():
    # Los intentos de login viven en la cache
    cache.clear()
    yield
    cache.clear()


def crear_perfil(email, role, academy=None, **campos):
    return Usuario.objects.crear_perfil(email=email, password=PASSWORD, role=role, academy=academy, **campos)


@pytest.fixture
def academia(db):
    return Academia.objects.create(name='Academia Norte', phone='2222-1111')


@pytest.fixture
def otra_academia(db):
    return Academia.objects.create(name='Academia Sur')


@pytest.fixture
def super_admin(db):
    return crear_perfil('root@compas.test', 'super_admin', first_name='Root')


@pytest.fixture
def director(academia):
    return crear_perfil('director@norte.test', 'director', academia, first_name='Diana', last_name='Paz')


@pytest.fixture
def profesor(academia):
    return crear_perfil('profesor@norte.test', 'professor', academia, first_name='Pablo', last_name='Ruiz')


@pytest.fixture
def encargado(academia):
    return crear_perfil('encargado@norte.test', 'guardian', academia, first_name='Elena', last_name='Castillo')


@pytest.fixture
def director_sur(otra_academia):
    return crear_perfil('director@sur.test', 'director', otra_academia)


@pytest.fixture
def encargado_sur(otra_academia):
    return crear_perfil('encargado@sur.test', 'guardian', otra_academia)


@pytest.fixture
def cliente_de():
    """Client con sesión iniciada para el usuario indicado"""

    def _cliente(usuario):
        client = Client()
        client.force_login(usuario)
        return client

    return _cliente


@pytest.fixture
def catalogo(academia, profesor, encargado):
    """
    Piano del año en curso (periodo I) con cuatro sesiones de clase,
    dos estudiantes a cargo del encargado y una matrícula de cada uno
    """
    anio = timezone.localdate().year
    piano = Materia.objects.create(academy=academia, name='Piano')
    ProfesorMateria.objects.create(profile=profesor, subject=piano)
    periodo = Periodo.objects.create(academy=academia, year=anio, period='I')
    curso = Curso.objects.create(profile=profesor, subject=piano, period=periodo)

    dias = [date(anio, 2, 3), date(anio, 2, 10), date(anio, 3, 3), date(anio, 5, 26)]
    fechas = [
        FechaPeriodo.objects.create(period=periodo, date_type='clase', date=d, subject=piano, profile=profesor)
        for d in dias
    ]
    FechaPeriodo.objects.create(period=periodo, date_type='feriado', date=date(anio, 4, 1))

    lucia = Estudiante.objects.create(academy=academia, first_name='Lucía', last_name='Castillo')
    mateo = Estudiante.objects.create(academy=academia, first_name='Mateo', last_name='Castillo')
    for estudiante in (lucia, mateo):
        EncargadoEstudiante.objects.create(guardian=encargado, student=estudiante, academy=academia)

    matriculas = [
        Matricula.objects.create(
            student=estudiante,
            subject=piano,
            period=periodo,
            profile=profesor,
            academy=academia,
            enrollment_date=date(anio, 1, 20),
        )
        for estudiante in (lucia, mateo)
    ]

    return SimpleNamespace(
        anio=anio,
        materia=piano,
        periodo=periodo,
        curso=curso,
        fechas=fechas,
        estudiantes=[lucia, mateo],
        matriculas=matriculas,
    )
