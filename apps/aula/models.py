# apps/aula/models.py

import uuid

from django.db import models
from django.utils import timezone

from apps.academico.models import Cancion, Estudiante, FechaPeriodo, Materia, Matricula
from apps.core.models import Academia, ModeloBase, ModeloEliminable, Usuario


class Insignia(ModeloEliminable):
    """Insignia (badge) que el profesor otorga por una virtud"""

    academy = models.ForeignKey(Academia, on_delete=models.CASCADE, related_name='insignias')
    name = models.CharField(max_length=100)
    virtud = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    frase = models.CharField(max_length=300, blank=True)
    image_url = models.URLField(blank=True)

    class Meta:
        db_table = 'badges'
        ordering = ['name']

    def __str__(self):
        return self.name


class InsigniaEstudiante(ModeloBase):
    """Insignia otorgada en una matrícula"""

    course_registration = models.ForeignKey(Matricula, on_delete=models.CASCADE, related_name='insignias')
    badge = models.ForeignKey(Insignia, on_delete=models.CASCADE, related_name='asignaciones')
    assigned_by = models.ForeignKey(
        Usuario, on_delete=models.SET_NULL, null=True, blank=True, related_name='insignias_otorgadas'
    )
    notes = models.TextField(blank=True)

    class Meta:
        db_table = 'student_badges'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(fields=['course_registration', 'badge'], name='insignia_unica_por_matricula'),
        ]

    def __str__(self):
        return f"{self.badge} -> {self.course_registration}"


class Asistencia(ModeloBase):
    """Asistencia de una matrícula a una sesión (fecha 'clase')"""

    STATUS_CHOICES = [
        ('presente', 'Presente'),
        ('ausente', 'Ausente'),
        ('tardanza', 'Tardanza'),
        ('justificado', 'Justificado'),
    ]

    course_registration = models.ForeignKey(Matricula, on_delete=models.CASCADE, related_name='asistencias')
    period_date = models.ForeignKey(FechaPeriodo, on_delete=models.CASCADE, related_name='asistencias')
    attendance_status = models.CharField(max_length=12, choices=STATUS_CHOICES)
    notes = models.CharField(max_length=500, blank=True)

    class Meta:
        db_table = 'session_attendances'
        constraints = [
            models.UniqueConstraint(fields=['course_registration', 'period_date'], name='asistencia_unica'),
        ]

    def __str__(self):
        return f"{self.course_registration} {self.period_date}: {self.attendance_status}"


class ComentarioSesion(ModeloBase):
    """Comentario del profesor sobre una matrícula en una sesión"""

    MAX_LENGTH = 1500

    course_registration = models.ForeignKey(Matricula, on_delete=models.CASCADE, related_name='comentarios')
    period_date = models.ForeignKey(FechaPeriodo, on_delete=models.CASCADE, related_name='comentarios')
    comment = models.TextField(max_length=MAX_LENGTH)
    author = models.ForeignKey(
        Usuario, on_delete=models.SET_NULL, null=True, blank=True, related_name='comentarios_sesion'
    )

    class Meta:
        db_table = 'session_comments'
        constraints = [
            models.UniqueConstraint(fields=['course_registration', 'period_date'], name='comentario_unico'),
        ]

    def __str__(self):
        return f"{self.course_registration} {self.period_date}"


class RubricaEvaluacion(ModeloEliminable):
    """Aspecto que se evalúa en cada canción (afinación, ritmo...)"""

    academy = models.ForeignKey(Academia, on_delete=models.CASCADE, related_name='rubricas')
    name = models.CharField(max_length=100)
    display_order = models.PositiveSmallIntegerField(default=0)

    class Meta:
        db_table = 'evaluation_rubrics'
        ordering = ['display_order', 'name']

    def __str__(self):
        return self.name


class EscalaEvaluacion(ModeloEliminable):
    """Nivel de la escala de calificación de la academia"""

    academy = models.ForeignKey(Academia, on_delete=models.CASCADE, related_name='escalas')
    name = models.CharField(max_length=100)
    numeric_value = models.FloatField(null=True, blank=True)
    display_order = models.PositiveSmallIntegerField(default=0)

    class Meta:
        db_table = 'evaluation_scales'
        ordering = ['display_order', 'name']

    def __str__(self):
        return self.name


class RubricaMateria(ModeloBase):
    """Rúbrica que aplica a una materia; sin ninguna, aplican todas las de la academia"""

    subject = models.ForeignKey(Materia, on_delete=models.CASCADE, related_name='rubricas')
    rubric = models.ForeignKey(RubricaEvaluacion, on_delete=models.CASCADE, related_name='materias')

    class Meta:
        db_table = 'subject_rubrics'
        constraints = [
            models.UniqueConstraint(fields=['subject', 'rubric'], name='rubrica_unica_por_materia'),
        ]

    def __str__(self):
        return f"{self.subject}: {self.rubric}"


class EvaluacionCancion(ModeloBase):
    """Calificación de una canción en una sesión, según una rúbrica"""

    course_registration = models.ForeignKey(Matricula, on_delete=models.CASCADE, related_name='evaluaciones')
    song = models.ForeignKey(Cancion, on_delete=models.CASCADE, related_name='evaluaciones')
    period_date = models.ForeignKey(FechaPeriodo, on_delete=models.CASCADE, related_name='evaluaciones')
    rubric = models.ForeignKey(RubricaEvaluacion, on_delete=models.CASCADE, related_name='evaluaciones')
    scale = models.ForeignKey(
        EscalaEvaluacion, on_delete=models.SET_NULL, null=True, blank=True, related_name='evaluaciones'
    )

    class Meta:
        db_table = 'song_evaluations'
        constraints = [
            models.UniqueConstraint(
                fields=['course_registration', 'song', 'period_date', 'rubric'],
                name='evaluacion_unica',
            ),
        ]

    def __str__(self):
        return f"{self.course_registration} {self.song} {self.rubric}: {self.scale}"


class TareaSesion(ModeloBase):
    """Tarea individual para una matrícula en una sesión"""

    MAX_LENGTH = 1500

    course_registration = models.ForeignKey(Matricula, on_delete=models.CASCADE, related_name='tareas')
    period_date = models.ForeignKey(FechaPeriodo, on_delete=models.CASCADE, related_name='tareas')
    assignment_text = models.TextField(max_length=MAX_LENGTH)

    class Meta:
        db_table = 'session_assignments'
        constraints = [
            models.UniqueConstraint(fields=['course_registration', 'period_date'], name='tarea_unica'),
        ]

    def __str__(self):
        return f"{self.course_registration} {self.period_date}"


class TareaGrupal(ModeloBase):
    """Tarea para todo el curso de una sesión"""

    MAX_LENGTH = 1500

    period_date = models.OneToOneField(FechaPeriodo, on_delete=models.CASCADE, related_name='tarea_grupal')
    assignment_text = models.TextField(max_length=MAX_LENGTH)

    class Meta:
        db_table = 'session_group_assignments'

    def __str__(self):
        return str(self.period_date)


class TareaCompletada(models.Model):
    """
    Marca de tarea completada

    Apunta a una tarea individual o a una grupal, nunca a las dos. En las
    grupales cada estudiante del curso marca la suya.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session_assignment = models.ForeignKey(
        TareaSesion, on_delete=models.CASCADE, null=True, blank=True, related_name='completadas'
    )
    session_group_assignment = models.ForeignKey(
        TareaGrupal, on_delete=models.CASCADE, null=True, blank=True, related_name='completadas'
    )
    student = models.ForeignKey(Estudiante, on_delete=models.CASCADE, related_name='tareas_completadas')
    completed_by = models.ForeignKey(
        Usuario, on_delete=models.SET_NULL, null=True, blank=True, related_name='tareas_marcadas'
    )
    completed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'task_completions'
        ordering = ['-completed_at']
        constraints = [
            models.UniqueConstraint(
                fields=['session_assignment', 'student'], name='tarea_completada_unica',
            ),
            models.UniqueConstraint(
                fields=['session_group_assignment', 'student'], name='tarea_grupal_completada_unica',
            ),
        ]

    def __str__(self):
        return f"{self.student} {self.completed_at:%Y-%m-%d}"
