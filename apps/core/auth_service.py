# apps/core/auth_service.py

"""
Servicio de Autenticación - Encapsula toda la lógica de cuentas del sistema

Inicio de sesión con bloqueo por intentos, recuperación de contraseña,
creación de cuentas con perfil y el alta de academia + director con
compensación manual.
"""

import logging
from typing import Dict, Optional, Tuple

from django.conf import settings
from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.tokens import default_token_generator
from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.core.mail import send_mail
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode

from .api import ErrorAPI, texto
from .models import Academia, Usuario

logger = logging.getLogger(__name__)


class AuthenticationService:
    """
    Servicio encapsulado para gestionar autenticación y cuentas

    Los métodos públicos devuelven tuplas (éxito, mensaje, ...) para las
    vistas HTML o lanzan ErrorAPI para la API JSON.
    """

    def __init__(self):
        # Atributos privados
        self._max_login_attempts = settings.COMPAS_MAX_LOGIN_ATTEMPTS
        self._lockout_duration_minutes = settings.COMPAS_LOGIN_LOCKOUT_MINUTES
        self._password_reset_timeout_hours = settings.COMPAS_PASSWORD_RESET_HOURS
        self._min_password_length = settings.COMPAS_MIN_PASSWORD_LENGTH

    # =================== SESIÓN ===================

    def iniciar_sesion(self, request, email: str, password: str, recordarme: bool = False) -> Tuple[bool, str]:
        """
        Inicia sesión con verificaciones de seguridad

        Returns:
            Tuple[éxito, mensaje]
        """
        email = texto(email).lower()

        if self._cuenta_bloqueada(email):
            return False, "Cuenta bloqueada temporalmente por demasiados intentos fallidos"

        usuario = self._autenticar_usuario(email, password)

        if usuario is None:
            self._registrar_intento_fallido(email)
            return False, "Credenciales inválidas"

        if not usuario.tiene_perfil:
            return False, "Tu cuenta no tiene un perfil configurado. Por favor, contacta al administrador."

        if not usuario.esta_activo:
            return False, "Tu cuenta está inactiva"

        login(request, usuario)

        if recordarme:
            request.session.set_expiry(86400 * 30)  # 30 días

        self._reiniciar_intentos(email)
        logger.info("Inicio de sesión de %s (%s)", usuario.email, usuario.role)

        return True, f"¡Bienvenido, {usuario.get_full_name() or usuario.email}!"

    def cerrar_sesion(self, request) -> bool:
        """Cierra la sesión"""
        logout(request)
        return True

    # =================== RECUPERACIÓN DE CONTRASEÑA ===================

    def iniciar_recuperacion(self, email: str) -> Tuple[bool, str]:
        """
        Envía el enlace de recuperación

        Nunca revela si el email existe.
        """
        mensaje_generico = "Si el email existe, recibirás instrucciones para recuperar tu contraseña"
        usuario = Usuario.objects.vigentes().filter(email=texto(email).lower(), is_active=True).first()
        if usuario is None:
            return True, mensaje_generico

        token = self._generar_token_recuperacion(usuario)
        if not self._enviar_email_recuperacion(usuario, token):
            return False, "Error al enviar el email. Intenta de nuevo."

        return True, mensaje_generico

    def validar_token_recuperacion(self, token: str, nuevo_password: str) -> Tuple[bool, str]:
        """Valida el token y redefine la contraseña"""
        usuario = self._decodificar_token_recuperacion(token)
        if not usuario:
            return False, "Enlace inválido o expirado"

        if not self._validar_contrasena(nuevo_password):
            return False, f"La contraseña debe tener al menos {self._min_password_length} caracteres"

        usuario.set_password(nuevo_password)
        usuario.save(update_fields=['password'])
        logger.info("Contraseña redefinida para %s", usuario.email)

        return True, "¡Contraseña actualizada!"

    # =================== CUENTAS ===================

    def crear_cuenta(self, datos: Dict, role: str, academy: Optional[Academia]) -> Usuario:
        """
        Crea una cuenta con perfil (profesor, encargado, estudiante...)

        Lanza ErrorAPI con el mensaje que espera la API.
        """
        email = texto(datos.get('email')).lower()
        password = datos.get('password') or ''

        if not self._validar_contrasena(password):
            raise ErrorAPI(f"Password must be at least {self._min_password_length} characters", 400)

        if self._usuario_existe(email):
            raise ErrorAPI(
                "Failed to create user",
                400,
                "A user with this email address has already been registered",
            )

        try:
            with transaction.atomic():
                return Usuario.objects.crear_perfil(
                    email=email,
                    password=password,
                    role=role,
                    academy=academy,
                    first_name=texto(datos.get('first_name')),
                    last_name=texto(datos.get('last_name')),
                    phone=texto(datos.get('phone')),
                    additional_info=texto(datos.get('additional_info')),
                    status=datos.get('status') if datos.get('status') in ('active', 'inactive') else 'active',
                )
        except IntegrityError as e:
            raise ErrorAPI("Failed to create user", 400, str(e))

    def crear_academia_con_director(self, datos: Dict) -> Tuple[Academia, Usuario]:
        """
        Alta de academia con su director

        Tres pasos: academia, cuenta del director y perfil del director.
        Si un paso falla se deshacen los anteriores (compensación).
        """
        self._validar_datos_academia(datos)

        # Paso 1: academia
        try:
            with transaction.atomic():
                academia = Academia.objects.create(
                    name=texto(datos.get('academyName')),
                    address=texto(datos.get('academyAddress')),
                    phone=texto(datos.get('academyPhone')),
                    website=texto(datos.get('academyWebsite')),
                )
        except DatabaseError as e:
            raise ErrorAPI("Failed to create academy", 500, str(e))

        # Paso 2: cuenta del director
        try:
            director = self._crear_cuenta_director(datos)
        except (IntegrityError, ValidationError, DatabaseError) as e:
            self._compensar(academia=academia)
            raise ErrorAPI("Failed to create director user", 500, str(e))

        # Paso 3: perfil del director
        try:
            self._configurar_perfil_director(director, academia, datos)
        except Exception as e:
            logger.error("Fallo al configurar el perfil del director %s: %s", director.email, e)
            self._compensar(academia=academia, usuario=director)
            raise ErrorAPI("Failed to create director profile", 500, str(e))

        logger.info("Academia %s creada con director %s", academia.name, director.email)
        self._enviar_email_bienvenida(director, academia)

        return academia, director

    # =================== MÉTODOS PRIVADOS ===================

    def _validar_datos_academia(self, datos: Dict):
        campos_obligatorios = [
            'academyName', 'directorFirstName', 'directorLastName',
            'directorEmail', 'directorPassword',
        ]
        for campo in campos_obligatorios:
            if not texto(datos.get(campo)):
                raise ErrorAPI("Missing required fields", 400)

        if not self._validar_contrasena(datos['directorPassword']):
            raise ErrorAPI(f"Password must be at least {self._min_password_length} characters", 400)

        if self._usuario_existe(datos['directorEmail']):
            raise ErrorAPI(
                "Failed to create director user",
                400,
                "A user with this email address has already been registered",
            )

    def _crear_cuenta_director(self, datos: Dict) -> Usuario:
        """Cuenta de acceso (todavía sin rol ni academia)"""
        email = texto(datos['directorEmail']).lower()
        with transaction.atomic():
            return Usuario.objects.create_user(
                username=email,
                email=email,
                password=datos['directorPassword'],
                first_name=texto(datos['directorFirstName']),
                last_name=texto(datos['directorLastName']),
            )

    def _configurar_perfil_director(self, director: Usuario, academia: Academia, datos: Dict):
        """Perfil: rol director, academia y teléfono"""
        director.role = 'director'
        director.academy = academia
        director.phone = texto(datos.get('directorPhone'))
        director.status = 'active'
        director.full_clean(exclude=['password'])
        with transaction.atomic():
            director.save()

    def _compensar(self, academia: Academia, usuario: Optional[Usuario] = None):
        """Deshace los pasos ya confirmados del alta de academia"""
        try:
            if usuario is not None:
                usuario.delete()
            academia.delete()
        except DatabaseError as e:
            logger.error("No se pudo deshacer el alta de la academia %s: %s", academia.pk, e)
        else:
            logger.warning("Alta de la academia %s revertida", academia.name)

    def _validar_contrasena(self, password) -> bool:
        return isinstance(password, str) and len(password) >= self._min_password_length

    def _usuario_existe(self, email) -> bool:
        email = texto(email).lower()
        return Usuario.objects.filter(email=email).exists() or Usuario.objects.filter(username=email).exists()

    def _autenticar_usuario(self, email: str, password: str) -> Optional[Usuario]:
        """Autentica por email (username como alternativa)"""
        usuario = authenticate(username=email, password=password)

        if not usuario:
            user_obj = Usuario.objects.filter(email=email, is_active=True).first()
            if user_obj is not None:
                usuario = authenticate(username=user_obj.username, password=password)

        return usuario

    def _clave_intentos(self, email: str) -> str:
        return f"compas:login-intentos:{email}"

    def _cuenta_bloqueada(self, email: str) -> bool:
        return cache.get(self._clave_intentos(email), 0) >= self._max_login_attempts

    def _registrar_intento_fallido(self, email: str):
        clave = self._clave_intentos(email)
        intentos = cache.get(clave, 0) + 1
        cache.set(clave, intentos, timeout=self._lockout_duration_minutes * 60)
        logger.warning("Intento de inicio de sesión fallido para %s (%s)", email, intentos)

    def _reiniciar_intentos(self, email: str):
        cache.delete(self._clave_intentos(email))

    def _generar_token_recuperacion(self, usuario: Usuario) -> str:
        """Token uid.token.timestamp (el uid en base64 puede contener guiones)"""
        timestamp = int(timezone.now().timestamp())
        uid = urlsafe_base64_encode(force_bytes(usuario.pk))
        token = default_token_generator.make_token(usuario)
        return f"{uid}.{token}.{timestamp}"

    def _decodificar_token_recuperacion(self, token: str) -> Optional[Usuario]:
        """Decodifica y valida el token de recuperación"""
        try:
            uid, token_part, timestamp = token.split('.')
            token_time = int(timestamp)
        except (AttributeError, ValueError):
            return None

        now = int(timezone.now().timestamp())
        if now - token_time > (self._password_reset_timeout_hours * 3600):
            return None

        try:
            user_id = urlsafe_base64_decode(uid).decode()
            usuario = Usuario.objects.get(pk=user_id)
        except (ValueError, UnicodeDecodeError, ValidationError, Usuario.DoesNotExist):
            return None

        if default_token_generator.check_token(usuario, token_part):
            return usuario

        return None

    def _enviar_email_bienvenida(self, director: Usuario, academia: Academia):
        """Email de bienvenida al director de una academia nueva"""
        message = f"""
Hola {director.first_name},

La academia "{academia.name}" fue registrada en Compás y tú eres su director.

Inicia sesión con {director.email} en {settings.BASE_URL}/login/

Saludos,
Equipo Compás
        """
        send_mail(
            subject=f'Bienvenido a Compás - {academia.name}',
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[director.email],
            fail_silently=True
        )

    def _enviar_email_recuperacion(self, usuario: Usuario, token: str) -> bool:
        """Envía el enlace de recuperación"""
        enlace_recuperacion = f"{settings.BASE_URL}/reset-password/{token}/"

        message = f"""
Hola {usuario.first_name or usuario.email},

Solicitaste recuperar la contraseña de tu cuenta de Compás.

Abre el siguiente enlace para definir una nueva contraseña:
{enlace_recuperacion}

El enlace expira en {self._password_reset_timeout_hours} horas.

Si no solicitaste este cambio, ignora este email.

Equipo Compás
        """

        try:
            send_mail(
                subject='Recuperación de contraseña - Compás',
                message=message,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[usuario.email],
                fail_silently=False
            )
        except Exception as e:
            logger.error("Error al enviar el email de recuperación a %s: %s", usuario.email, e)
            return False

        return True


# Instancia global del servicio (Singleton)
auth_service = AuthenticationService()
