# apps/academico/models.py

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from apps.core.models import Academia, ModeloBase, ModeloEliminable, Usuario


class Materia(ModeloEliminable):
    """Materia (instrumento o disciplina) que ofrece la academia"""

    academy = models.ForeignKey(Academia, on_delete=models.CASCADE, related_name='materias')
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    class Meta:
        db_table = 'subjects'
        ordering = ['name']

    def __str__(self):
        return self.name


class ProfesorMateria(ModeloBase):
    """Materias que un profesor está habilitado para impartir"""

    profile = models.ForeignKey(Usuario, on_delete=models.CASCADE, related_name='materias_asignadas')
    subject = models.ForeignKey(Materia, on_delete=models.CASCADE, related_name='profesores')

    class Meta:
        db_table = 'professor_subjects'
        constraints = [
            models.UniqueConstraint(fields=['profile', 'subject'], name='professor_subject_unico'),
        ]

    def __str__(self):
        return f"{self.profile} - {self.subject}"


class Periodo(ModeloEliminable):
    """
    Periodo lectivo (año + periodo romano I-VI)

    Único por academia; un periodo eliminado se restaura en lugar de duplicarse.
    """

    PERIOD_CHOICES = [(p, p) for p in ('I', 'II', 'III', 'IV', 'V', 'VI')]

    academy = models.ForeignKey(Academia, on_delete=models.CASCADE, related_name='periodos')
    year = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(2000), MaxValueValidator(2100)]
    )
    period = models.CharField(max_length=3, choices=PERIOD_CHOICES)

    class Meta:
        db_table = 'periods'
        ordering = ['-year', 'period']
        constraints = [
            models.UniqueConstraint(fields=['academy', 'year', 'period'], name='periodo_unico_por_academia'),
        ]

    def __str__(self):
        return f"{self.year}-{self.period}"


class Horario(ModeloEliminable):
    """Turno semanal (día 1-7 = lunes-domingo) de un profesor"""

    DAY_NAMES = ['Lunes', 'Martes', 'Miércoles', 'Jueves', 'Viernes', 'Sábado', 'Domingo']

    academy = models.ForeignKey(Academia, on_delete=models.CASCADE, related_name='horarios')
    subject = models.ForeignKey(
        Materia, on_delete=models.SET_NULL, null=True, blank=True, related_name='horarios'
    )
    period = models.ForeignKey(
        Periodo, on_delete=models.SET_NULL, null=True, blank=True, related_name='horarios'
    )
    name = models.CharField(max_length=100)
    profile = models.ForeignKey(Usuario, on_delete=models.CASCADE, related_name='horarios')
    day_of_week = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(7)]
    )
    start_time = models.TimeField()
    end_time = models.TimeField()

    class Meta:
        db_table = 'schedules'
        ordering = ['day_of_week', 'start_time']

    def __str__(self):
        return f"{self.name} ({self.nombre_dia} {self.start_time:%H:%M}-{self.end_time:%H:%M})"

    @property
    def nombre_dia(self):
        return self.DAY_NAMES[self.day_of_week - 1]

    @classmethod
    def conflictos(cls, profile_id, day_of_week, start_time, end_time, period_id=None, excluir_id=None):
        """
        Turnos vigentes del profesor que se solapan con el rango indicado
        """
        consulta = cls.objects.vigentes().filter(
            profile_id=profile_id,
            day_of_week=day_of_week,
            start_time__lt=end_time,
            end_time__gt=start_time,
        )
        if period_id is not None:
            consulta = consulta.filter(period_id=period_id)
        if excluir_id is not None:
            consulta = consulta.exclude(id=excluir_id)
        return consulta


class FechaPeriodo(ModeloEliminable):
    """
    Fecha del calendario de un periodo

    Las fechas 'clase' son las sesiones de un curso: llevan materia y
    profesor, y de ellas se deriva el rango de fechas de los contratos.
    """

    DATE_TYPE_CHOICES = [
        ('inicio', 'Inicio'),
        ('cierre', 'Cierre'),
        ('feriado', 'Feriado'),
        ('recital', 'Recital'),
        ('clase', 'Clase'),
        ('otro', 'Otro'),
    ]

    period = models.ForeignKey(Periodo, on_delete=models.CASCADE, related_name='fechas')
    date_type = models.CharField(max_length=10, choices=DATE_TYPE_CHOICES)
    date = models.DateField()
    subject = models.ForeignKey(
        Materia, on_delete=models.SET_NULL, null=True, blank=True, related_name='fechas'
    )
    profile = models.ForeignKey(
        Usuario, on_delete=models.SET_NULL, null=True, blank=True, related_name='fechas_clase'
    )
    schedule = models.ForeignKey(
        Horario, on_delete=models.SET_NULL, null=True, blank=True, related_name='fechas'
    )
    comment = models.CharField(max_length=500, blank=True)

    class Meta:
        db_table = 'period_dates'
        ordering = ['date']
        indexes = [
            models.Index(fields=['period', 'date_type']),
        ]

    def __str__(self):
        return f"{self.get_date_type_display()} {self.date}"


class Curso(ModeloBase):
    """
    Curso = profesor + materia + periodo

    Una matrícula solo puede existir sobre un curso existente.
    """

    profile = models.ForeignKey(Usuario, on_delete=models.CASCADE, related_name='cursos')
    subject = models.ForeignKey(Materia, on_delete=models.CASCADE, related_name='cursos')
    period = models.ForeignKey(Periodo, on_delete=models.CASCADE, related_name='cursos')
    mensualidad = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )

    class Meta:
        db_table = 'professor_subject_periods'
        ordering = ['-period__year', 'period__period']
        constraints = [
            models.UniqueConstraint(fields=['profile', 'subject', 'period'], name='curso_unico'),
        ]

    def __str__(self):
        return f"{self.subject} {self.period} ({self.profile})"

    def fechas_clase(self):
        """Sesiones de clase vigentes del curso"""
        return FechaPeriodo.objects.vigentes().filter(
            period_id=self.period_id,
            subject_id=self.subject_id,
            date_type='clase',
        ).filter(Q(profile_id=self.profile_id) | Q(profile__isnull=True))

    def horarios(self):
        return Horario.objects.vigentes().filter(
            period_id=self.period_id,
            subject_id=self.subject_id,
            profile_id=self.profile_id,
        )

    def matriculas(self):
        return Matricula.objects.vigentes().filter(
            period_id=self.period_id,
            subject_id=self.subject_id,
            profile_id=self.profile_id,
        )


class Estudiante(ModeloEliminable):
    """Estudiante de la academia (no necesita cuenta propia)"""

    ENROLLMENT_STATUS_CHOICES = [
        ('inscrito', 'Inscrito'),
        ('retirado', 'Retirado'),
        ('graduado', 'Graduado'),
    ]

    academy = models.ForeignKey(Academia, on_delete=models.CASCADE, related_name='estudiantes')
    user = models.ForeignKey(
        Usuario, on_delete=models.SET_NULL, null=True, blank=True, related_name='fichas_estudiante'
    )
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    date_of_birth = models.DateField(null=True, blank=True)
    additional_info = models.TextField(blank=True)
    enrollment_status = models.CharField(
        max_length=10, choices=ENROLLMENT_STATUS_CHOICES, default='inscrito'
    )

    class Meta:
        db_table = 'students'
        ordering = ['first_name', 'last_name']

    def __str__(self):
        return self.nombre_completo

    @property
    def nombre_completo(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def encargado(self):
        vinculo = self.guardian_links.select_related('guardian').first()
        return vinculo.guardian if vinculo else None


class EncargadoEstudiante(ModeloBase):
    """Vínculo encargado -> estudiante (cada estudiante tiene como máximo un encargado)"""

    guardian = models.ForeignKey(Usuario, on_delete=models.CASCADE, related_name='estudiantes_a_cargo')
    student = models.ForeignKey(Estudiante, on_delete=models.CASCADE, related_name='guardian_links')
    academy = models.ForeignKey(Academia, on_delete=models.CASCADE, related_name='vinculos_encargado')
    relationship = models.CharField(max_length=50, blank=True)

    class Meta:
        db_table = 'guardian_students'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(fields=['student'], name='un_encargado_por_estudiante'),
        ]

    def __str__(self):
        return f"{self.guardian} -> {self.student}"


class Cancion(ModeloEliminable):
    """Pieza del repertorio de la academia"""

    academy = models.ForeignKey(Academia, on_delete=models.CASCADE, related_name='canciones')
    name = models.CharField(max_length=200)
    author = models.CharField(max_length=200, blank=True)
    difficulty_level = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )

    class Meta:
        db_table = 'songs'
        ordering = ['-created_at']

    def __str__(self):
        if self.author:
            return f"{self.name} - {self.author}"
        return self.name


class Matricula(ModeloEliminable):
    """
    Matrícula de un estudiante en un curso (course registration)
    """

    STATUS_CHOICES = [
        ('active', 'Activa'),
        ('completed', 'Completada'),
        ('cancelled', 'Cancelada'),
    ]

    student = models.ForeignKey(Estudiante, on_delete=models.CASCADE, related_name='matriculas')
    subject = models.ForeignKey(Materia, on_delete=models.CASCADE, related_name='matriculas')
    period = models.ForeignKey(Periodo, on_delete=models.CASCADE, related_name='matriculas')
    profile = models.ForeignKey(
        Usuario, on_delete=models.SET_NULL, null=True, blank=True, related_name='matriculas_impartidas'
    )
    academy = models.ForeignKey(Academia, on_delete=models.CASCADE, related_name='matriculas')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    enrollment_date = models.DateField()
    notes = models.TextField(blank=True)
    songs = models.ManyToManyField(Cancion, through='MatriculaCancion', related_name='matriculas')

    class Meta:
        db_table = 'course_registrations'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'subject', 'period', 'profile'],
                condition=Q(deleted_at__isnull=True),
                name='matricula_unica_vigente',
            ),
        ]

    def __str__(self):
        return f"{self.student} - {self.subject} {self.period}"


class MatriculaCancion(ModeloBase):
    """Canción asignada a una matrícula"""

    course_registration = models.ForeignKey(Matricula, on_delete=models.CASCADE, related_name='canciones_asignadas')
    song = models.ForeignKey(Cancion, on_delete=models.CASCADE, related_name='asignaciones')

    class Meta:
        db_table = 'course_registration_songs'
        constraints = [
            models.UniqueConstraint(fields=['course_registration', 'song'], name='cancion_unica_por_matricula'),
        ]
