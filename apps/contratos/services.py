# apps/contratos/services.py

"""
Reglas de negocio de los contratos

- rango de fechas de un conjunto de matrículas a partir del calendario
- generación de cuotas mensuales
- creación atómica de contrato + vínculos + cuotas
"""

import logging
from datetime import date

from django.db import transaction

from apps.academico.models import FechaPeriodo

from .models import Contrato, ContratoMatricula, CuotaContrato

logger = logging.getLogger(__name__)


def _coincide(fecha, matricula):
    """Una fecha 'clase' pertenece a la matrícula si periodo, materia y profesor encajan"""
    if fecha.period_id != matricula.period_id:
        return False
    if fecha.subject_id is not None and fecha.subject_id != matricula.subject_id:
        return False
    if fecha.profile_id is not None and matricula.profile_id is not None:
        return fecha.profile_id == matricula.profile_id
    return True


def fechas_clase_de_periodos(period_ids):
    return list(
        FechaPeriodo.objects.vigentes()
        .filter(period_id__in=set(period_ids), date_type='clase')
        .only('date', 'period_id', 'subject_id', 'profile_id')
    )


def rango_de_matricula(matricula, fechas):
    """(primera, última) fecha de clase de una matrícula, o (None, None)"""
    propias = [f.date for f in fechas if _coincide(f, matricula)]
    if not propias:
        propias = [f.date for f in fechas if f.period_id == matricula.period_id]
    if not propias:
        return None, None
    return min(propias), max(propias)


def calcular_rango_fechas(matriculas):
    """
    Rango (inicio, fin) cubierto por las sesiones de las matrículas

    Si ninguna fecha encaja con materia/profesor se usan todas las fechas
    'clase' de los periodos involucrados.
    """
    matriculas = list(matriculas)
    if not matriculas:
        return None, None

    fechas = fechas_clase_de_periodos(m.period_id for m in matriculas)
    propias = [f.date for f in fechas if any(_coincide(f, m) for m in matriculas)]
    if not propias:
        propias = [f.date for f in fechas]
    if not propias:
        return None, None
    return min(propias), max(propias)


def meses_entre(inicio, fin):
    """Primer día de cada mes desde el mes de inicio hasta el mes de fin (inclusive)"""
    meses = []
    actual = date(inicio.year, inicio.month, 1)
    while actual <= fin:
        meses.append(actual)
        if actual.month == 12:
            actual = date(actual.year + 1, 1, 1)
        else:
            actual = date(actual.year, actual.month + 1, 1)
    return meses


@transaction.atomic
def crear_contrato(academia, encargado, matriculas, monthly_amount, start_date, end_date):
    """Crea el contrato, sus vínculos con las matrículas y una cuota pendiente por mes"""
    contrato = Contrato.objects.create(
        academy=academia,
        guardian=encargado,
        monthly_amount=monthly_amount,
        start_date=start_date,
        end_date=end_date,
    )
    ContratoMatricula.objects.bulk_create([
        ContratoMatricula(contract=contrato, course_registration=m) for m in matriculas
    ])
    CuotaContrato.objects.bulk_create([
        CuotaContrato(contract=contrato, month=mes, amount=monthly_amount, status='pendiente')
        for mes in meses_entre(start_date, end_date)
    ])

    logger.info(
        "Contrato %s creado para %s (%s matrículas, %s - %s)",
        contrato.id, encargado.email, len(matriculas), start_date, end_date,
    )
    return contrato
