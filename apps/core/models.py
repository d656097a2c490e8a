# apps/core/models.py

import uuid

from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models
from django.utils import timezone


class ModeloBase(models.Model):
    """
    Base abstracta de todos los modelos de Compás

    Llaves UUID y marcas de tiempo de creación/actualización.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class EliminacionLogicaQuerySet(models.QuerySet):
    """QuerySet que sabe separar filas vigentes de filas eliminadas"""

    def vigentes(self):
        return self.filter(deleted_at__isnull=True)

    def eliminar(self):
        """Eliminación lógica en bloque"""
        return self.update(deleted_at=timezone.now(), updated_at=timezone.now())


class ModeloEliminable(ModeloBase):
    """
    Base abstracta con eliminación lógica (deleted_at)

    Las filas eliminadas se conservan para el historial, pero ningún
    listado ni búsqueda de la API las devuelve.
    """

    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = EliminacionLogicaQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def eliminado(self):
        return self.deleted_at is not None

    def eliminar(self):
        """Marca la fila como eliminada"""
        self.deleted_at = timezone.now()
        self.save(update_fields=['deleted_at', 'updated_at'])

    def restaurar(self):
        """Revierte una eliminación lógica"""
        self.deleted_at = None
        self.save(update_fields=['deleted_at', 'updated_at'])


class Academia(ModeloBase):
    """
    Academia de música - el tenant del sistema

    Todo dato operativo (materias, estudiantes, contratos...) pertenece
    a exactamente una academia.
    """

    STATUS_CHOICES = [
        ('active', 'Activa'),
        ('inactive', 'Inactiva'),
    ]

    name = models.CharField(max_length=200)
    address = models.CharField(max_length=300, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    website = models.CharField(max_length=200, blank=True)
    logo_url = models.URLField(max_length=500, blank=True)
    timezone = models.CharField(max_length=60, default='America/Guatemala')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active', db_index=True)

    class Meta:
        db_table = 'academies'
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def activa(self):
        return self.status == 'active'

    def get_directores(self):
        """Directores vigentes de la academia"""
        return self.usuarios.filter(role='director', deleted_at__isnull=True)


class UsuarioQuerySet(models.QuerySet):

    def vigentes(self):
        return self.filter(deleted_at__isnull=True)

    def del_rol(self, role):
        return self.filter(role=role, deleted_at__isnull=True)


class UsuarioManager(UserManager.from_queryset(UsuarioQuerySet)):
    """
    Manager de usuarios: el email es también el nombre de usuario
    """

    def crear_perfil(self, email, password, role, academy=None, **campos):
        """Crea una cuenta con perfil completo (rol + academia)"""
        email = self.normalize_email(email).strip().lower()
        return self.create_user(
            username=email,
            email=email,
            password=password,
            role=role,
            academy=academy,
            **campos
        )


class Usuario(AbstractUser):
    """
    Usuario con perfil multi-tenant

    El rol define el portal al que accede y la academia define qué datos
    puede ver. Solo el super admin puede no tener academia.
    """

    ROLE_CHOICES = [
        ('super_admin', 'Super administrador'),
        ('director', 'Director'),
        ('professor', 'Profesor'),
        ('guardian', 'Encargado'),
        ('student', 'Estudiante'),
    ]

    STATUS_CHOICES = [
        ('active', 'Activo'),
        ('inactive', 'Inactivo'),
    ]

    # Página de inicio de cada rol
    PAGINAS_INICIO = {
        'super_admin': '/super-admin/',
        'director': '/director/',
        'professor': '/professor/',
        'guardian': '/guardian/',
        'student': '/student-info/',
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)

    # === PERFIL ===
    phone = models.CharField(max_length=30, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, blank=True, db_index=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    additional_info = models.TextField(blank=True)

    # === MULTI-TENANCY ===
    academy = models.ForeignKey(
        Academia,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='usuarios',
    )

    # === METADATOS ===
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = UsuarioManager()

    class Meta:
        db_table = 'profiles'
        indexes = [
            models.Index(fields=['academy', 'role']),
        ]

    def __str__(self):
        nombre = self.get_full_name()
        if nombre:
            return f"{nombre} <{self.email}>"
        return self.email

    # === PERFIL ===

    @property
    def tiene_perfil(self):
        """Un usuario sin rol (o eliminado) no tiene perfil utilizable"""
        return bool(self.role) and self.deleted_at is None

    @property
    def es_super_admin(self):
        return self.role == 'super_admin'

    @property
    def esta_activo(self):
        return self.is_active and self.status == 'active' and self.deleted_at is None

    @property
    def pagina_inicio(self):
        return self.PAGINAS_INICIO.get(self.role, '/login/')

    def puede_acceder_academia(self, academy_id):
        """
        Regla de aislamiento: el super admin ve todas las academias,
        el resto solo la suya
        """
        if self.es_super_admin:
            return True
        return academy_id is not None and str(academy_id) == str(self.academy_id)

    def eliminar(self):
        """Eliminación lógica: la cuenta deja de poder iniciar sesión"""
        self.deleted_at = timezone.now()
        self.is_active = False
        self.status = 'inactive'
        self.save(update_fields=['deleted_at', 'is_active', 'status', 'updated_at'])
