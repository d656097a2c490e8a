# apps/core/management/commands/seed_academia.py

from datetime import date, time, timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.academico.models import (
    Cancion, Curso, EncargadoEstudiante, Estudiante, FechaPeriodo, Horario,
    Materia, Matricula, MatriculaCancion, Periodo, ProfesorMateria,
)
from apps.aula.models import EscalaEvaluacion, Insignia, RubricaEvaluacion
from apps.contratos.models import Contrato
from apps.contratos.services import calcular_rango_fechas, crear_contrato
from apps.core.models import Academia, Usuario

NOMBRE_ACADEMIA = 'Academia Demo Compás'
PASSWORD_DEMO = 'compas123'


class Command(BaseCommand):
    help = 'Crea una academia de demostración con datos de ejemplo'

    def add_arguments(self, parser):
        parser.add_argument(
            '--limpiar',
            action='store_true',
            help='Elimina la academia de demostración antes de crearla de nuevo'
        )

    def handle(self, *args, **options):
        if options['limpiar']:
            self._limpiar()

        if Academia.objects.filter(name=NOMBRE_ACADEMIA).exists():
            self.stdout.write(self.style.WARNING(
                f'⚠️  "{NOMBRE_ACADEMIA}" ya existe. Usa --limpiar para recrearla.'
            ))
            return

        with transaction.atomic():
            resumen = self._crear_academia()

        self.stdout.write(self.style.SUCCESS(
            '\n✅ Academia de demostración creada\n'
            '\n'
            f'  Director:  {resumen["director"]}\n'
            f'  Profesor:  {resumen["profesor"]}\n'
            f'  Encargado: {resumen["encargado"]}\n'
            f'  Contraseña de todas las cuentas: {PASSWORD_DEMO}\n'
            f'  Sesiones de clase: {resumen["sesiones"]}\n'
            f'  Cuotas del contrato: {resumen["cuotas"]}\n'
        ))

    @transaction.atomic
    def _limpiar(self):
        academia = Academia.objects.filter(name=NOMBRE_ACADEMIA).first()
        if academia is None:
            return

        # Contratos y cuentas protegen a la academia
        Contrato.objects.filter(academy=academia).delete()
        Usuario.objects.filter(academy=academia).delete()
        academia.delete()
        self.stdout.write('🧹 Academia de demostración eliminada')

    def _crear_academia(self):
        academia = Academia.objects.create(
            name=NOMBRE_ACADEMIA,
            address='6a Avenida 10-20, Zona 1',
            phone='+502 2222-0000',
        )

        director = self._cuenta('director@demo.compas', 'director', academia, 'Daniela', 'Morales')
        profesor = self._cuenta('profesor@demo.compas', 'professor', academia, 'Pablo', 'Herrera')
        encargado = self._cuenta('encargado@demo.compas', 'guardian', academia, 'Elena', 'Castillo')

        piano = Materia.objects.create(academy=academia, name='Piano', description='Piano clásico')
        Materia.objects.create(academy=academia, name='Guitarra', description='Guitarra acústica')
        ProfesorMateria.objects.create(profile=profesor, subject=piano)

        hoy = timezone.localdate()
        periodo = Periodo.objects.create(academy=academia, year=hoy.year, period='I')
        curso = Curso.objects.create(profile=profesor, subject=piano, period=periodo, mensualidad=Decimal('175.00'))

        horario = Horario.objects.create(
            academy=academia,
            subject=piano,
            period=periodo,
            profile=profesor,
            name='Piano - Martes',
            day_of_week=2,
            start_time=time(16, 0),
            end_time=time(17, 0),
        )

        # Doce martes a partir del primer martes del año
        primer_martes = date(hoy.year, 1, 1)
        while primer_martes.isoweekday() != 2:
            primer_martes += timedelta(days=1)
        sesiones = FechaPeriodo.objects.bulk_create([
            FechaPeriodo(
                period=periodo,
                date_type='clase',
                date=primer_martes + timedelta(weeks=semana),
                subject=piano,
                profile=profesor,
                schedule=horario,
            )
            for semana in range(12)
        ])
        FechaPeriodo.objects.create(period=periodo, date_type='inicio', date=sesiones[0].date)
        FechaPeriodo.objects.create(period=periodo, date_type='cierre', date=sesiones[-1].date)

        estudiantes = [
            Estudiante.objects.create(academy=academia, first_name='Lucía', last_name='Castillo',
                                      date_of_birth=date(2014, 5, 3)),
            Estudiante.objects.create(academy=academia, first_name='Mateo', last_name='Castillo',
                                      date_of_birth=date(2016, 9, 21)),
        ]
        for estudiante in estudiantes:
            EncargadoEstudiante.objects.create(
                guardian=encargado, student=estudiante, academy=academia, relationship='Madre'
            )

        cancion = Cancion.objects.create(academy=academia, name='Für Elise', author='Beethoven', difficulty_level=2)
        Insignia.objects.create(academy=academia, name='Constancia', virtud='Perseverancia',
                                frase='Cada día un poco mejor')
        for orden, nombre in enumerate(['Técnica', 'Ritmo', 'Expresión'], start=1):
            RubricaEvaluacion.objects.create(academy=academia, name=nombre, display_order=orden)
        for orden, (nombre, valor) in enumerate([('Logrado', 3), ('En proceso', 2), ('Inicial', 1)], start=1):
            EscalaEvaluacion.objects.create(academy=academia, name=nombre, numeric_value=valor, display_order=orden)

        matriculas = []
        for estudiante in estudiantes:
            matricula = Matricula.objects.create(
                student=estudiante,
                subject=curso.subject,
                period=curso.period,
                profile=curso.profile,
                academy=academia,
                enrollment_date=hoy,
            )
            MatriculaCancion.objects.create(course_registration=matricula, song=cancion)
            matriculas.append(matricula)

        inicio, fin = calcular_rango_fechas(matriculas)
        contrato = crear_contrato(academia, encargado, matriculas, curso.mensualidad * len(matriculas), inicio, fin)

        return {
            'director': director.email,
            'profesor': profesor.email,
            'encargado': encargado.email,
            'sesiones': len(sesiones),
            'cuotas': contrato.cuotas.count(),
        }

    def _cuenta(self, email, role, academia, first_name, last_name):
        return Usuario.objects.crear_perfil(
            email=email,
            password=PASSWORD_DEMO,
            role=role,
            academy=academia,
            first_name=first_name,
            last_name=last_name,
        )
