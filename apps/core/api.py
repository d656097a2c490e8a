# apps/core/api.py

"""
Infraestructura común de la API JSON

Todas las rutas /api/ heredan de APIView, que encapsula la secuencia de
verificaciones de cada handler:

1. sesión iniciada            -> 401 Unauthorized
2. perfil utilizable          -> 404 Profile not found
3. rol permitido              -> 403 Forbidden
4. academia asignada          -> 404 Academy not found

y convierte los errores en cuerpos JSON {error, details}.
"""

import json
import logging
import uuid
from contextlib import contextmanager
from datetime import date, time
from decimal import Decimal, InvalidOperation

from django.db import DatabaseError, transaction
from django.http import JsonResponse
from django.views import View

from .models import Academia

logger = logging.getLogger(__name__)

ROLES_GESTION = ('director', 'super_admin')
ROLES_AULA = ('director', 'professor', 'super_admin')


class ErrorAPI(Exception):
    """Error de dominio que se traduce directamente en una respuesta JSON"""

    def __init__(self, mensaje, status=400, details=None):
        super().__init__(mensaje)
        self.mensaje = mensaje
        self.status = status
        self.details = details

    def como_respuesta(self):
        return respuesta_error(self.mensaje, self.status, self.details)


def respuesta_error(mensaje, status, details=None):
    cuerpo = {'error': mensaje}
    if details is not None:
        cuerpo['details'] = details
    return JsonResponse(cuerpo, status=status)


@contextmanager
def falla_bd(mensaje):
    """Convierte errores de base de datos en 500 {error: mensaje, details}"""
    try:
        yield
    except DatabaseError as e:
        logger.error("%s: %s", mensaje, e)
        raise ErrorAPI(mensaje, 500, str(e)) from e


def leer_json(request):
    """Cuerpo JSON del request como dict (vacío si no hay cuerpo)"""
    if not request.body:
        return {}
    try:
        datos = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise ErrorAPI('Invalid JSON body', 400)
    if not isinstance(datos, dict):
        raise ErrorAPI('Invalid JSON body', 400)
    return datos


def uuid_o_none(valor):
    """UUID válido o None (los ids mal formados se tratan como inexistentes)"""
    if valor is None or valor == '':
        return None
    try:
        return uuid.UUID(str(valor))
    except (ValueError, TypeError, AttributeError):
        return None


def lista_uuids(valores):
    """Lista de UUIDs válidos, sin duplicados y en el orden recibido"""
    if not isinstance(valores, (list, tuple)):
        return []
    resultado = []
    for valor in valores:
        convertido = uuid_o_none(valor)
        if convertido and convertido not in resultado:
            resultado.append(convertido)
    return resultado


def fecha_iso_o_none(valor):
    """Fecha YYYY-MM-DD o None"""
    if not isinstance(valor, str) or len(valor) != 10:
        return None
    try:
        return date.fromisoformat(valor)
    except ValueError:
        return None


def hora_o_none(valor):
    """Hora HH:MM o HH:MM:SS o None"""
    if not isinstance(valor, str):
        return None
    try:
        return time.fromisoformat(valor.strip())
    except ValueError:
        return None


def monto_o_none(valor):
    """Número JSON >= 0 como Decimal con dos decimales, o None"""
    if isinstance(valor, bool) or not isinstance(valor, (int, float)):
        return None
    try:
        monto = Decimal(str(valor))
    except InvalidOperation:
        return None
    if not monto.is_finite() or monto < 0:
        return None
    return monto.quantize(Decimal('0.01'))


def entero(valor):
    """Entero estricto (los booleanos y los textos no cuentan)"""
    return isinstance(valor, int) and not isinstance(valor, bool)


def texto(valor):
    """Texto recortado ('' para None o valores que no son texto)"""
    if valor is None:
        return ''
    return str(valor).strip()


class APIView(View):
    """
    Vista base de la API

    Atributos de clase:
        roles: roles permitidos (None = cualquier rol con perfil)
        roles_por_metodo: sobrescribe `roles` por método HTTP
        requiere_academia: exige academia a quien no es super admin
    """

    roles = ROLES_GESTION
    roles_por_metodo = {}
    requiere_academia = True
    mensaje_prohibido = 'Forbidden'

    def dispatch(self, request, *args, **kwargs):
        try:
            self.perfil = self.verificar_perfil(request)
            return super().dispatch(request, *args, **kwargs)
        except ErrorAPI as e:
            if e.status >= 500:
                self._marcar_rollback()
            return e.como_respuesta()
        except Exception as e:
            logger.exception("Error inesperado en %s %s", request.method, request.path)
            self._marcar_rollback()
            return respuesta_error('An unexpected error occurred', 500, str(e))

    def verificar_perfil(self, request):
        usuario = request.user
        if not usuario.is_authenticated:
            raise ErrorAPI('Unauthorized', 401)

        if not usuario.tiene_perfil:
            raise ErrorAPI('Profile not found', 404)

        roles = self.roles_por_metodo.get(request.method, self.roles)
        if roles is not None and usuario.role not in roles:
            raise ErrorAPI(self.mensaje_prohibido, 403)

        if self.requiere_academia and not usuario.es_super_admin and not usuario.academy_id:
            raise ErrorAPI('Academy not found', 404)

        return usuario

    def _marcar_rollback(self):
        # Solo con ATOMIC_REQUESTS la vista corre dentro de su propia transacción
        conexion = transaction.get_connection()
        if conexion.settings_dict.get('ATOMIC_REQUESTS') and conexion.in_atomic_block:
            transaction.set_rollback(True)

    # === AISLAMIENTO POR ACADEMIA ===

    def filtrar_academia(self, queryset, campo='academy'):
        """Limita el queryset a la academia del perfil (salvo super admin)"""
        if self.perfil.es_super_admin:
            return queryset
        return queryset.filter(**{f'{campo}_id': self.perfil.academy_id})

    def verificar_academia(self, academy_id, mensaje='Forbidden'):
        if not self.perfil.puede_acceder_academia(academy_id):
            raise ErrorAPI(mensaje, 403)

    def academia_destino(self, datos, mensaje='academy_id is required'):
        """
        Academia donde se crean los registros nuevos

        El super admin sin academia propia debe indicar academy_id.
        """
        if self.perfil.academy_id:
            return self.perfil.academy
        academy_id = uuid_o_none(datos.get('academy_id'))
        if academy_id is None:
            raise ErrorAPI(mensaje, 400)
        try:
            return Academia.objects.get(id=academy_id)
        except Academia.DoesNotExist:
            raise ErrorAPI('Academy not found', 404)

    def obtener(self, queryset, pk, mensaje, campo_academia='academy'):
        """
        Busca un objeto por id: 404 si no existe, 403 si es de otra academia
        """
        pk = uuid_o_none(pk)
        objeto = queryset.filter(pk=pk).first() if pk else None
        if objeto is None:
            raise ErrorAPI(mensaje, 404)
        if campo_academia:
            destino = objeto
            *ruta, ultimo = campo_academia.split('__')
            for parte in ruta:
                destino = getattr(destino, parte)
            self.verificar_academia(getattr(destino, f'{ultimo}_id'))
        return objeto

    @property
    def datos(self):
        if not hasattr(self, '_datos'):
            self._datos = leer_json(self.request)
        return self._datos
