# apps/core/cuentas.py

"""
API de cuentas: academias, profesores, encargados y exportación de datos

Las altas delegan en auth_service, que valida contraseñas y emails
duplicados y aplica la compensación del alta de academia.
"""

import logging

from django.conf import settings
from django.db import DatabaseError, transaction
from django.http import JsonResponse
from django.utils import timezone

from apps.academico.models import EncargadoEstudiante, Estudiante, Materia, ProfesorMateria
from apps.academico.serializers import resumen_estudiante, resumen_materia, serializar_horario, serializar_vinculo

from .api import APIView, ErrorAPI, falla_bd, lista_uuids, texto, uuid_o_none
from .auth_service import auth_service
from .models import Academia, Usuario
from .serializers import serializar_academia, serializar_perfil

logger = logging.getLogger(__name__)

ESTADOS_CUENTA = ('active', 'inactive')
MENSAJE_ESTADO_INVALIDO = "Invalid status. Must be 'active' or 'inactive'"


def _leer_estado(datos):
    status = datos.get('status')
    if status not in ESTADOS_CUENTA:
        raise ErrorAPI(MENSAJE_ESTADO_INVALIDO, 400)
    return status


def _actualizar_campos(objeto, datos, campos):
    """Copia los campos de texto presentes en el body; devuelve los alterados"""
    alterados = []
    for campo in campos:
        if campo in datos:
            setattr(objeto, campo, texto(datos[campo]))
            alterados.append(campo)
    return alterados


# === ACADEMIAS ===

class AcademiasAPI(APIView):
    """
    GET  /api/academies - listado con directores (solo super admin)
    POST /api/academies - alta de academia + director
    """

    roles = None
    requiere_academia = False

    def get(self, request):
        if not self.perfil.es_super_admin:
            raise ErrorAPI('Forbidden', 403)

        with falla_bd('Failed to fetch academies'):
            academias = [serializar_academia(a, con_directores=True) for a in Academia.objects.order_by('name')]
        return JsonResponse({'academies': academias})

    def post(self, request):
        if not self.perfil.es_super_admin:
            raise ErrorAPI('Forbidden: Only super admins can create academies', 403)

        academia, director = auth_service.crear_academia_con_director(self.datos)

        return JsonResponse({
            'success': True,
            'academy': {'id': academia.id, 'name': academia.name},
            'director': {'id': director.id, 'email': director.email},
        }, status=201)


class AcademiaDetalleAPI(APIView):
    """El super admin ve cualquier academia; el director solo la suya"""

    CAMPOS = ('name', 'address', 'phone', 'website', 'logo_url', 'timezone')

    def get(self, request, pk):
        academia = self.obtener(Academia.objects.all(), pk, 'Academy not found', campo_academia=None)
        self.verificar_academia(academia.id)
        return JsonResponse({'academy': serializar_academia(academia, con_directores=True)})

    def patch(self, request, pk):
        academia = self.obtener(Academia.objects.all(), pk, 'Academy not found', campo_academia=None)
        self.verificar_academia(academia.id)

        alterados = _actualizar_campos(academia, self.datos, self.CAMPOS)
        if 'name' in alterados and not academia.name:
            raise ErrorAPI('Name cannot be empty', 400)
        if 'timezone' in alterados and not academia.timezone:
            academia.timezone = 'America/Guatemala'

        if alterados:
            with falla_bd('Failed to update academy'):
                academia.save(update_fields=alterados + ['updated_at'])
        return JsonResponse({'academy': serializar_academia(academia)})


class AcademiaStatusAPI(APIView):
    """PATCH /api/academies/<id>/status"""

    roles = ('super_admin',)
    requiere_academia = False
    mensaje_prohibido = 'Forbidden: Only super admins can update academy status'

    def patch(self, request, pk):
        status = _leer_estado(self.datos)
        academia = self.obtener(Academia.objects.all(), pk, 'Academy not found', campo_academia=None)

        with falla_bd('Failed to update academy status'):
            academia.status = status
            academia.save(update_fields=['status', 'updated_at'])

        logger.info("Academia %s ahora está %s", academia.name, status)
        return JsonResponse({'success': True, 'status': status})


# === PROFESORES ===

def serializar_profesor(profesor):
    datos = serializar_perfil(profesor)
    datos['subjects'] = [
        resumen_materia(pm.subject)
        for pm in profesor.materias_asignadas.select_related('subject').filter(subject__deleted_at__isnull=True)
    ]
    datos['schedules'] = [
        serializar_horario(h, con_perfil=False) for h in profesor.horarios.vigentes().order_by('day_of_week', 'start_time')
    ]
    return datos


class ProfesorAPIView(APIView):

    def obtener_profesor(self, pk):
        return self.obtener(Usuario.objects.del_rol('professor'), pk, 'Professor not found')

    def vincular_materias(self, profesor, subject_ids):
        """Asigna las materias de la academia del profesor (las ajenas se ignoran)"""
        materias = Materia.objects.vigentes().filter(id__in=lista_uuids(subject_ids), academy_id=profesor.academy_id)
        try:
            with transaction.atomic():
                ProfesorMateria.objects.bulk_create(
                    [ProfesorMateria(profile=profesor, subject=m) for m in materias],
                    ignore_conflicts=True,
                )
        except DatabaseError as e:
            # El profesor ya existe; las materias pueden asignarse después
            logger.error("No se pudieron asignar materias al profesor %s: %s", profesor.email, e)


class ProfesoresAPI(ProfesorAPIView):

    def get(self, request):
        profesores = self.filtrar_academia(Usuario.objects.del_rol('professor'))
        with falla_bd('Failed to fetch professors'):
            datos = [serializar_profesor(p) for p in profesores.order_by('-created_at')]
        return JsonResponse({'professors': datos})

    def post(self, request):
        datos = self.datos
        if not texto(datos.get('first_name')) or not texto(datos.get('last_name')) or not texto(datos.get('email')):
            raise ErrorAPI('First name, last name, and email are required', 400)

        academia = self.academia_destino(datos)
        profesor = auth_service.crear_cuenta(datos, 'professor', academia)

        if datos.get('subject_ids'):
            self.vincular_materias(profesor, datos['subject_ids'])

        logger.info("Profesor %s creado en %s", profesor.email, academia.name)
        return JsonResponse({
            'professor': serializar_profesor(profesor),
            'message': 'Professor created successfully',
        }, status=201)


class ProfesorDetalleAPI(ProfesorAPIView):

    def get(self, request, pk):
        return JsonResponse({'professor': serializar_profesor(self.obtener_profesor(pk))})

    def patch(self, request, pk):
        profesor = self.obtener_profesor(pk)
        alterados = _actualizar_campos(
            profesor, self.datos, ('first_name', 'last_name', 'phone', 'additional_info')
        )

        with falla_bd('Failed to update professor'):
            if alterados:
                profesor.save(update_fields=alterados + ['updated_at'])
            if isinstance(self.datos.get('subject_ids'), list):
                profesor.materias_asignadas.all().delete()
                self.vincular_materias(profesor, self.datos['subject_ids'])

        return JsonResponse({'professor': serializar_profesor(profesor)})

    def delete(self, request, pk):
        profesor = self.obtener_profesor(pk)
        with falla_bd('Failed to delete professor'):
            profesor.eliminar()
        logger.info("Profesor %s eliminado", profesor.email)
        return JsonResponse({'message': 'Professor deleted successfully'})


class ProfesorStatusAPI(ProfesorAPIView):

    def patch(self, request, pk):
        status = _leer_estado(self.datos)
        profesor = self.obtener_profesor(pk)
        with falla_bd('Failed to update professor status'):
            profesor.status = status
            profesor.save(update_fields=['status', 'updated_at'])
        return JsonResponse({'message': 'Professor status updated successfully', 'status': status})


# === ENCARGADOS ===

def serializar_encargado(encargado):
    datos = serializar_perfil(encargado)
    datos['students'] = [
        {**resumen_estudiante(v.student), 'relationship': v.relationship or None, 'assignment_id': v.id}
        for v in encargado.estudiantes_a_cargo.select_related('student').filter(student__deleted_at__isnull=True)
    ]
    return datos


class EncargadoAPIView(APIView):

    def obtener_encargado(self, pk):
        return self.obtener(Usuario.objects.del_rol('guardian'), pk, 'Guardian not found')


class EncargadosAPI(EncargadoAPIView):

    def get(self, request):
        encargados = self.filtrar_academia(Usuario.objects.del_rol('guardian'))
        with falla_bd('Failed to fetch guardians'):
            datos = [serializar_encargado(e) for e in encargados.order_by('-created_at')]
        return JsonResponse({'guardians': datos})

    def post(self, request):
        datos = self.datos
        if not texto(datos.get('email')) or not datos.get('password'):
            raise ErrorAPI('Email and password are required', 400)

        academia = self.academia_destino(datos)
        encargado = auth_service.crear_cuenta(datos, 'guardian', academia)

        # Solo estudiantes de la academia y sin encargado
        estudiantes = Estudiante.objects.vigentes().filter(
            id__in=lista_uuids(datos.get('student_ids')),
            academy=academia,
            guardian_links__isnull=True,
        )
        with falla_bd('Failed to assign students'):
            EncargadoEstudiante.objects.bulk_create([
                EncargadoEstudiante(
                    guardian=encargado,
                    student=e,
                    academy=academia,
                    relationship=texto(datos.get('relationship')),
                )
                for e in estudiantes
            ])

        logger.info("Encargado %s creado en %s", encargado.email, academia.name)
        return JsonResponse({
            'guardian': serializar_encargado(encargado),
            'message': 'Guardian created successfully',
        }, status=201)


class EncargadoDetalleAPI(EncargadoAPIView):

    def get(self, request, pk):
        return JsonResponse({'guardian': serializar_encargado(self.obtener_encargado(pk))})

    def delete(self, request, pk):
        encargado = self.obtener_encargado(pk)
        with falla_bd('Failed to delete guardian'):
            encargado.estudiantes_a_cargo.all().delete()
            encargado.eliminar()
        logger.info("Encargado %s eliminado", encargado.email)
        return JsonResponse({'message': 'Guardian deleted successfully'})


class EncargadoStatusAPI(EncargadoAPIView):

    def patch(self, request, pk):
        status = _leer_estado(self.datos)
        encargado = self.obtener_encargado(pk)
        with falla_bd('Failed to update guardian status'):
            encargado.status = status
            encargado.save(update_fields=['status', 'updated_at'])
        return JsonResponse({'message': 'Guardian status updated successfully', 'status': status})


class EncargadoEstudiantesAPI(EncargadoAPIView):
    """
    GET    /api/guardians/<id>/students
    POST   /api/guardians/<id>/students
    DELETE /api/guardians/<id>/students?assignment_id=
    """

    roles_por_metodo = {'GET': ('director', 'super_admin', 'guardian')}

    def get(self, request, pk):
        if self.perfil.role == 'guardian':
            if str(uuid_o_none(pk)) != str(self.perfil.id):
                raise ErrorAPI('Forbidden', 403)
            encargado = self.perfil
        else:
            encargado = self.obtener_encargado(pk)

        with falla_bd('Failed to fetch assignments'):
            vinculos = list(
                encargado.estudiantes_a_cargo.select_related('student')
                .filter(student__deleted_at__isnull=True)
                .order_by('created_at')
            )
        return JsonResponse({'assignments': [
            {**serializar_vinculo(v), 'student': resumen_estudiante(v.student)} for v in vinculos
        ]})

    def post(self, request, pk):
        encargado = self.obtener_encargado(pk)
        student_ids = self.datos.get('student_ids')
        if not isinstance(student_ids, list) or not student_ids:
            raise ErrorAPI('student_ids must be a non-empty array', 400)

        ids = lista_uuids(student_ids)
        estudiantes = list(Estudiante.objects.vigentes().filter(id__in=ids))
        if any(uuid_o_none(v) is None for v in student_ids) or len(estudiantes) != len(ids):
            raise ErrorAPI('Some students were not found', 400)
        if any(e.academy_id != encargado.academy_id for e in estudiantes):
            raise ErrorAPI('Some students do not belong to this academy', 403)

        con_encargado = list(
            EncargadoEstudiante.objects.filter(student__in=estudiantes).select_related('student')
        )
        if con_encargado:
            raise ErrorAPI(
                'Uno o más estudiantes ya tienen un encargado asignado',
                400,
                ', '.join(v.student.nombre_completo for v in con_encargado),
            )

        with falla_bd('Failed to assign students'):
            vinculos = EncargadoEstudiante.objects.bulk_create([
                EncargadoEstudiante(
                    guardian=encargado,
                    student=e,
                    academy_id=encargado.academy_id,
                    relationship=texto(self.datos.get('relationship')),
                )
                for e in estudiantes
            ])

        return JsonResponse({
            'assignments': [serializar_vinculo(v) for v in vinculos],
            'message': 'Students assigned successfully',
        }, status=201)

    def delete(self, request, pk):
        encargado = self.obtener_encargado(pk)
        assignment_id = request.GET.get('assignment_id')
        if not assignment_id:
            raise ErrorAPI('assignment_id is required', 400)

        vinculo = encargado.estudiantes_a_cargo.filter(id=uuid_o_none(assignment_id)).first()
        if vinculo is None:
            raise ErrorAPI('Assignment not found', 404)

        with falla_bd('Failed to remove assignment'):
            vinculo.delete()
        return JsonResponse({'message': 'Student assignment removed successfully'})


# === DATOS PERSONALES ===

class ExportarDatosAPI(APIView):
    """GET /api/user/data-export - descarga de los datos propios"""

    roles = None
    requiere_academia = False

    def get(self, request):
        usuario = self.perfil
        ahora = timezone.now()
        datos = {
            'user': {
                'id': usuario.id,
                'email': usuario.email,
                'created_at': usuario.created_at,
                'updated_at': usuario.updated_at,
                'last_login': usuario.last_login,
            },
            'profile': {**serializar_perfil(usuario), 'deleted_at': usuario.deleted_at},
            'export_date': ahora,
            'export_version': settings.COMPAS_EXPORT_VERSION,
        }
        response = JsonResponse(datos)
        response['Content-Disposition'] = (
            f'attachment; filename="user-data-export-{usuario.id}-{ahora:%Y%m%d%H%M%S}.json"'
        )
        return response
