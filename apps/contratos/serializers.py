# apps/contratos/serializers.py

from apps.academico.serializers import resumen_estudiante, resumen_materia, resumen_periodo
from apps.core.serializers import resumen_perfil


def serializar_cuota(cuota):
    return {
        'id': cuota.id,
        'contract_id': cuota.contract_id,
        'month': cuota.month,
        'amount': float(cuota.amount),
        'status': cuota.status,
        'paid_at': cuota.paid_at,
        'created_at': cuota.created_at,
    }


def serializar_contrato(contrato):
    return {
        'id': contrato.id,
        'academy_id': contrato.academy_id,
        'guardian_id': contrato.guardian_id,
        'monthly_amount': float(contrato.monthly_amount),
        'start_date': contrato.start_date,
        'end_date': contrato.end_date,
        'created_at': contrato.created_at,
        'updated_at': contrato.updated_at,
    }


def resumen_cuotas(cuotas):
    cuotas = list(cuotas)
    pagadas = [c for c in cuotas if c.pagada]
    return {
        'total': len(cuotas),
        'paid': len(pagadas),
        'pending': len(cuotas) - len(pagadas),
        'amount_total': float(sum(c.amount for c in cuotas)),
        'amount_paid': float(sum(c.amount for c in pagadas)),
    }


def serializar_matricula_contratada(matricula):
    return {
        'id': matricula.id,
        'status': matricula.status,
        'student': resumen_estudiante(matricula.student),
        'subject': resumen_materia(matricula.subject),
        'period': resumen_periodo(matricula.period),
        'profile': resumen_perfil(matricula.profile),
    }
