# apps/contratos/views.py

"""
API de contratos

Solo director y super admin. Todo contrato pertenece a la academia del
encargado contratante.
"""

import logging

from django.db import transaction
from django.db.models import Count
from django.http import JsonResponse
from django.utils import timezone

from apps.academico.models import Curso, EncargadoEstudiante, Estudiante, Matricula
from apps.core.api import APIView, ErrorAPI, falla_bd, fecha_iso_o_none, lista_uuids, monto_o_none, uuid_o_none
from apps.core.models import Usuario
from apps.core.serializers import resumen_perfil

from .models import Contrato, ContratoMatricula
from .serializers import (
    resumen_cuotas, serializar_contrato, serializar_cuota, serializar_matricula_contratada,
)
from .services import calcular_rango_fechas, crear_contrato, fechas_clase_de_periodos, rango_de_matricula

logger = logging.getLogger(__name__)


def _monto_mensual(valor):
    monto = monto_o_none(valor)
    if monto is None:
        raise ErrorAPI('monthly_amount must be a non-negative number', 400)
    return monto


class ContratoAPIView(APIView):

    def encargado_de_la_academia(self, guardian_id):
        encargado = Usuario.objects.del_rol('guardian').filter(id=uuid_o_none(guardian_id)).first()
        if encargado is None:
            raise ErrorAPI('Guardian not found', 404)
        self.verificar_academia(encargado.academy_id, 'Guardian does not belong to this academy')
        return encargado

    def _estudiantes_del_encargado(self, encargado):
        return set(
            EncargadoEstudiante.objects.filter(guardian=encargado).values_list('student_id', flat=True)
        )


class ContratosAPI(ContratoAPIView):
    """
    GET  /api/contracts
    POST /api/contracts
    """

    def get(self, request):
        contratos = self.filtrar_academia(Contrato.objects.all())
        if request.GET.get('guardian_id'):
            contratos = contratos.filter(guardian_id=uuid_o_none(request.GET['guardian_id']))

        with falla_bd('Failed to fetch contracts'):
            contratos = list(
                contratos.select_related('guardian')
                .prefetch_related('cuotas')
                .annotate(num_matriculas=Count('vinculos'))
                .order_by('-created_at')
            )
            datos = [
                {
                    **serializar_contrato(c),
                    'guardian': resumen_perfil(c.guardian),
                    'course_registrations_count': c.num_matriculas,
                    'invoices': resumen_cuotas(c.cuotas.all()),
                }
                for c in contratos
            ]
        return JsonResponse({'contracts': datos})

    def post(self, request):
        datos = self.datos
        ids_recibidos = datos.get('course_registration_ids')
        if not datos.get('guardian_id') or not isinstance(ids_recibidos, list) or not ids_recibidos:
            raise ErrorAPI('guardian_id and course_registration_ids (non-empty array) are required', 400)

        monto = _monto_mensual(datos.get('monthly_amount'))

        if not datos.get('start_date') or not datos.get('end_date'):
            raise ErrorAPI('start_date and end_date are required (YYYY-MM-DD)', 400)
        start_date = fecha_iso_o_none(datos['start_date'])
        end_date = fecha_iso_o_none(datos['end_date'])
        if start_date is None or end_date is None or end_date < start_date:
            raise ErrorAPI('Invalid start_date or end_date', 400)

        encargado = self.encargado_de_la_academia(datos['guardian_id'])

        ids = lista_uuids(ids_recibidos)
        matriculas = list(Matricula.objects.vigentes().filter(id__in=ids))
        if any(uuid_o_none(v) is None for v in ids_recibidos) or len(matriculas) != len(ids):
            raise ErrorAPI('Some course registrations were not found or are invalid', 400)

        estudiantes = self._estudiantes_del_encargado(encargado)
        if any(m.student_id not in estudiantes for m in matriculas):
            raise ErrorAPI('All course registrations must belong to students of the selected guardian', 400)
        if any(m.academy_id != encargado.academy_id for m in matriculas):
            raise ErrorAPI('All course registrations must belong to the academy', 400)

        with falla_bd('Failed to create contract'):
            contrato = crear_contrato(encargado.academy, encargado, matriculas, monto, start_date, end_date)

        return JsonResponse({
            'contract': {
                **serializar_contrato(contrato),
                'course_registration_ids': [m.id for m in matriculas],
                'invoices_count': contrato.cuotas.count(),
            },
            'message': 'Contract created successfully',
        }, status=201)


class ContratoDetalleAPI(ContratoAPIView):
    """GET /api/contracts/<id>"""

    def get(self, request, pk):
        contrato = self.obtener(Contrato.objects.select_related('guardian'), pk, 'Contract not found')

        with falla_bd('Failed to fetch contract'):
            matriculas = [
                serializar_matricula_contratada(v.course_registration)
                for v in contrato.vinculos.select_related(
                    'course_registration__student',
                    'course_registration__subject',
                    'course_registration__period',
                    'course_registration__profile',
                )
            ]
            cuotas = list(contrato.cuotas.order_by('month'))

        return JsonResponse({'contract': {
            **serializar_contrato(contrato),
            'guardian': resumen_perfil(contrato.guardian),
            'course_registrations': matriculas,
            'invoices': [serializar_cuota(c) for c in cuotas],
            'summary': resumen_cuotas(cuotas),
        }})


class CuotaAPI(ContratoAPIView):
    """PATCH /api/contracts/<id>/invoices/<invoice_id> - solo marcar como pagada"""

    def patch(self, request, pk, invoice_pk):
        if self.datos.get('status', 'pagado') != 'pagado':
            raise ErrorAPI("Only status 'pagado' is allowed", 400)

        contrato = self.obtener(Contrato.objects.all(), pk, 'Contract not found')
        cuota = contrato.cuotas.filter(id=uuid_o_none(invoice_pk)).first()
        if cuota is None:
            raise ErrorAPI('Invoice not found', 404)
        if cuota.pagada:
            raise ErrorAPI('Invoice is already marked as paid', 400)

        with falla_bd('Failed to update invoice'):
            cuota.marcar_pagada()

        logger.info("Cuota %s del contrato %s marcada como pagada", cuota.month, contrato.id)
        return JsonResponse({'invoice': serializar_cuota(cuota), 'message': 'Invoice marked as paid'})


class RangoFechasAPI(ContratoAPIView):
    """
    POST /api/contracts/date-range

    Primera y última sesión de clase de las matrículas indicadas.
    """

    def post(self, request):
        ids = lista_uuids(self.datos.get('course_registration_ids'))
        if not ids:
            return JsonResponse({'start_date': None, 'end_date': None})

        with falla_bd('Failed to compute date range'):
            matriculas = self.filtrar_academia(Matricula.objects.vigentes().filter(id__in=ids))
            inicio, fin = calcular_rango_fechas(matriculas)
        return JsonResponse({'start_date': inicio, 'end_date': fin})


class ContratoEspecialAPI(ContratoAPIView):
    """
    POST /api/contracts/special

    Contrata cursos (no matrículas): crea las matrículas que falten y toma
    el rango de fechas del calendario de cada curso.
    """

    def post(self, request):
        datos = self.datos
        items = datos.get('items')
        if not datos.get('guardian_id') or not isinstance(items, list) or not items:
            raise ErrorAPI('guardian_id and items (non-empty array of {student_id, course_id}) are required', 400)

        monto = _monto_mensual(datos.get('monthly_amount'))
        pares = self._leer_items(items)

        encargado = self.encargado_de_la_academia(datos['guardian_id'])
        academy_id = encargado.academy_id

        cursos = {
            c.id: c for c in Curso.objects.select_related('period', 'subject').filter(
                id__in={curso_id for _, curso_id in pares}
            )
        }
        if len(cursos) != len({curso_id for _, curso_id in pares}):
            raise ErrorAPI('Uno o más cursos no fueron encontrados', 400)
        if any(c.period.academy_id != academy_id for c in cursos.values()):
            raise ErrorAPI('El curso no pertenece a esta academia', 400)

        estudiantes_ids = {student_id for student_id, _ in pares}
        if not estudiantes_ids <= self._estudiantes_del_encargado(encargado):
            raise ErrorAPI('Uno o más estudiantes no pertenecen al encargado seleccionado', 400)
        estudiantes = {
            e.id: e for e in Estudiante.objects.vigentes().filter(id__in=estudiantes_ids)
        }
        if len(estudiantes) != len(estudiantes_ids) or any(
            e.academy_id != academy_id for e in estudiantes.values()
        ):
            raise ErrorAPI('El estudiante no pertenece a esta academia', 400)

        fechas = []
        for curso in cursos.values():
            fechas.extend(f.date for f in curso.fechas_clase())
        if not fechas:
            raise ErrorAPI('No se encontraron fechas de sesiones para los cursos seleccionados', 400)

        with falla_bd('Error al crear contrato'), transaction.atomic():
            matriculas = [self._matricula_para(estudiantes[s], cursos[c]) for s, c in pares]
            contrato = crear_contrato(
                encargado.academy, encargado, matriculas, monto, min(fechas), max(fechas)
            )

        return JsonResponse({
            'contract': {
                **serializar_contrato(contrato),
                'course_registration_ids': [m.id for m in matriculas],
                'invoices_count': contrato.cuotas.count(),
            },
            'message': 'Contrato creado correctamente',
        }, status=201)

    def _leer_items(self, items):
        pares = []
        for item in items:
            student_id = uuid_o_none(item.get('student_id')) if isinstance(item, dict) else None
            course_id = uuid_o_none(item.get('course_id')) if isinstance(item, dict) else None
            if student_id is None or course_id is None:
                raise ErrorAPI('Cada item debe tener student_id y course_id', 400)
            if (student_id, course_id) not in pares:
                pares.append((student_id, course_id))
        return pares

    def _matricula_para(self, estudiante, curso):
        matricula = curso.matriculas().filter(student=estudiante).first()
        if matricula is None:
            matricula = Matricula.objects.create(
                student=estudiante,
                subject_id=curso.subject_id,
                period_id=curso.period_id,
                profile_id=curso.profile_id,
                academy_id=estudiante.academy_id,
                status='active',
                enrollment_date=timezone.localdate(),
            )
        return matricula


class MatriculaMasivaAPI(ContratoAPIView):
    """
    POST /api/course-registrations/bulk-with-contracts

    Matricula a varios estudiantes en un mismo curso y genera un contrato
    por encargado. La cuota mensual es la mensualidad del curso por cada
    matrícula del encargado y el contrato va de la primera a la última
    sesión del curso.
    """

    def post(self, request):
        course_id = self.datos.get('course_id')
        student_ids = self.datos.get('student_ids')
        if not course_id or not isinstance(student_ids, list) or not student_ids:
            raise ErrorAPI('course_id and student_ids (non-empty array) are required', 400)

        curso = Curso.objects.select_related('period__academy').filter(id=uuid_o_none(course_id)).first()
        if curso is None:
            raise ErrorAPI('Curso no encontrado', 404)
        if not curso.mensualidad or curso.mensualidad <= 0:
            raise ErrorAPI(
                'El curso no tiene mensualidad definida. '
                'Define la mensualidad en el curso antes de generar contratos.',
                400,
            )
        if curso.period.eliminado:
            raise ErrorAPI('Periodo no encontrado', 404)
        academia = curso.period.academy
        self.verificar_academia(academia.id, 'El curso no pertenece a tu academia')

        sesiones = list(curso.fechas_clase().order_by('date').values_list('date', flat=True))
        if not sesiones:
            raise ErrorAPI('El curso no tiene fechas de sesiones. No se puede generar el contrato.', 400)

        estudiantes = self._estudiantes_validos(student_ids, academia)
        ids = [e.id for e in estudiantes]
        if curso.matriculas().filter(student_id__in=ids).exists():
            raise ErrorAPI('Uno o más estudiantes ya están matriculados en este curso', 400)

        encargado_de = dict(
            EncargadoEstudiante.objects.filter(student_id__in=ids).values_list('student_id', 'guardian_id')
        )
        if len(encargado_de) != len(ids):
            raise ErrorAPI(
                'Uno o más estudiantes no tienen encargado asignado. '
                'Asigna un encargado antes de generar contratos.',
                400,
            )
        encargados = Usuario.objects.in_bulk(set(encargado_de.values()))

        with falla_bd('Failed to create course registrations'), transaction.atomic():
            por_encargado = {}
            for estudiante in estudiantes:
                matricula = Matricula.objects.create(
                    student=estudiante,
                    subject_id=curso.subject_id,
                    period_id=curso.period_id,
                    profile_id=curso.profile_id,
                    academy=academia,
                    status='active',
                    enrollment_date=timezone.localdate(),
                )
                por_encargado.setdefault(encargado_de[estudiante.id], []).append(matricula)

            contratos = []
            for guardian_id, matriculas in por_encargado.items():
                monto = curso.mensualidad * len(matriculas)
                contrato = crear_contrato(
                    academia, encargados[guardian_id], matriculas, monto, sesiones[0], sesiones[-1]
                )
                contratos.append({
                    'id': contrato.id,
                    'guardian_id': guardian_id,
                    'monthly_amount': float(monto),
                    'course_registration_ids': [m.id for m in matriculas],
                })

        logger.info("Curso %s: %s matrículas y %s contratos", curso, len(ids), len(contratos))
        return JsonResponse({
            'registrations': [
                {'id': m.id, 'student_id': m.student_id}
                for matriculas in por_encargado.values() for m in matriculas
            ],
            'contracts': contratos,
        })

    def _estudiantes_validos(self, student_ids, academia):
        """Estudiantes vigentes de la academia, en el orden recibido y sin repetir"""
        ids = lista_uuids(student_ids)
        estudiantes = Estudiante.objects.vigentes().in_bulk(ids)
        if len(ids) != len({str(s) for s in student_ids}) or len(estudiantes) != len(ids):
            raise ErrorAPI('Uno o más estudiantes no fueron encontrados o están inactivos', 400)
        if any(e.academy_id != academia.id for e in estudiantes.values()):
            raise ErrorAPI('El estudiante no pertenece a esta academia', 400)
        if any(e.enrollment_status == 'retirado' for e in estudiantes.values()):
            raise ErrorAPI('Uno o más estudiantes tienen estado retirado', 400)
        return [estudiantes[i] for i in ids]


class MatriculasEncargadoAPI(ContratoAPIView):
    """
    GET /api/contracts/guardians/<guardian_id>/course-registrations

    Matrículas de los estudiantes del encargado, con su rango de sesiones
    y si ya forman parte de algún contrato.
    """

    def get(self, request, guardian_pk):
        encargado = Usuario.objects.del_rol('guardian').filter(id=uuid_o_none(guardian_pk)).first()
        if encargado is None:
            return JsonResponse({'courseRegistrations': []})
        self.verificar_academia(encargado.academy_id)

        with falla_bd('Failed to fetch course registrations'):
            matriculas = list(
                Matricula.objects.vigentes()
                .filter(
                    student_id__in=self._estudiantes_del_encargado(encargado),
                    student__deleted_at__isnull=True,
                    subject__deleted_at__isnull=True,
                    period__deleted_at__isnull=True,
                )
                .select_related('student', 'subject', 'period', 'profile')
                .order_by('-created_at')
            )
            fechas = fechas_clase_de_periodos(m.period_id for m in matriculas)
            contratadas = set(
                ContratoMatricula.objects.filter(course_registration__in=matriculas)
                .values_list('course_registration_id', flat=True)
            )

        datos = []
        for matricula in matriculas:
            inicio, fin = rango_de_matricula(matricula, fechas)
            datos.append({
                **serializar_matricula_contratada(matricula),
                'student_id': matricula.student_id,
                'subject_id': matricula.subject_id,
                'period_id': matricula.period_id,
                'profile_id': matricula.profile_id,
                'first_session_date': inicio,
                'last_session_date': fin,
                'contracted': matricula.id in contratadas,
            })
        return JsonResponse({'courseRegistrations': datos})
