# tests/test_servicios.py

from datetime import date

import pytest

from apps.academico.models import FechaPeriodo, Materia, Matricula
from apps.contratos.services import calcular_rango_fechas, fechas_clase_de_periodos, meses_entre, rango_de_matricula


def test_meses_entre_en_el_mismo_anio():
    assert meses_entre(date(2025, 2, 17), date(2025, 4, 2)) == [
        date(2025, 2, 1), date(2025, 3, 1), date(2025, 4, 1),
    ]


def test_meses_entre_cruza_el_anio():
    assert meses_entre(date(2025, 12, 9), date(2026, 1, 5)) == [date(2025, 12, 1), date(2026, 1, 1)]


def test_meses_entre_un_solo_dia():
    assert meses_entre(date(2025, 3, 31), date(2025, 3, 31)) == [date(2025, 3, 1)]


@pytest.mark.django_db
def test_rango_ignora_feriados_y_eliminadas(catalogo):
    catalogo.fechas[-1].eliminar()

    assert calcular_rango_fechas(catalogo.matriculas) == (date(catalogo.anio, 2, 3), date(catalogo.anio, 3, 3))


@pytest.mark.django_db
def test_rango_usa_el_periodo_cuando_no_hay_fechas_propias(academia, profesor, catalogo):
    guitarra = Materia.objects.create(academy=academia, name='Guitarra')
    matricula = Matricula.objects.create(
        student=catalogo.estudiantes[0], subject=guitarra, period=catalogo.periodo, profile=profesor,
        academy=academia, enrollment_date=date(catalogo.anio, 1, 20),
    )

    assert calcular_rango_fechas([matricula]) == (date(catalogo.anio, 2, 3), date(catalogo.anio, 5, 26))


@pytest.mark.django_db
def test_rango_de_matricula(academia, catalogo):
    FechaPeriodo.objects.create(
        period=catalogo.periodo, date_type='clase', date=date(catalogo.anio, 6, 2),
        subject=Materia.objects.create(academy=academia, name='Violín'),
    )
    fechas = fechas_clase_de_periodos([catalogo.periodo.id])

    assert rango_de_matricula(catalogo.matriculas[0], fechas) == (date(catalogo.anio, 2, 3), date(catalogo.anio, 5, 26))


def test_rango_sin_matriculas():
    assert calcular_rango_fechas([]) == (None, None)
