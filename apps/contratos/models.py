# apps/contratos/models.py

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from apps.academico.models import Matricula
from apps.core.models import Academia, ModeloBase, Usuario


class Contrato(ModeloBase):
    """Contrato de un encargado por un conjunto de matrículas"""

    academy = models.ForeignKey(Academia, on_delete=models.CASCADE, related_name='contratos')
    guardian = models.ForeignKey(Usuario, on_delete=models.PROTECT, related_name='contratos')
    monthly_amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    start_date = models.DateField()
    end_date = models.DateField()
    course_registrations = models.ManyToManyField(
        Matricula, through='ContratoMatricula', related_name='contratos'
    )

    class Meta:
        db_table = 'contracts'
        ordering = ['-created_at']

    def __str__(self):
        return f"Contrato {self.guardian} {self.start_date} - {self.end_date}"

    @property
    def total(self):
        return sum((c.amount for c in self.cuotas.all()), start=0)

    @property
    def total_pagado(self):
        return sum((c.amount for c in self.cuotas.all() if c.pagada), start=0)


class ContratoMatricula(ModeloBase):
    contract = models.ForeignKey(Contrato, on_delete=models.CASCADE, related_name='vinculos')
    course_registration = models.ForeignKey(Matricula, on_delete=models.CASCADE, related_name='vinculos_contrato')

    class Meta:
        db_table = 'contract_course_registrations'
        constraints = [
            models.UniqueConstraint(fields=['contract', 'course_registration'], name='matricula_unica_por_contrato'),
        ]


class CuotaContrato(ModeloBase):
    """Cuota mensual de un contrato (month = primer día del mes)"""

    STATUS_CHOICES = [
        ('pendiente', 'Pendiente'),
        ('pagado', 'Pagado'),
    ]

    contract = models.ForeignKey(Contrato, on_delete=models.CASCADE, related_name='cuotas')
    month = models.DateField()
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pendiente', db_index=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'contract_invoices'
        ordering = ['month']
        constraints = [
            models.UniqueConstraint(fields=['contract', 'month'], name='cuota_unica_por_mes'),
        ]

    def __str__(self):
        return f"{self.contract_id} {self.month:%Y-%m} ({self.status})"

    @property
    def pagada(self):
        return self.status == 'pagado'

    def marcar_pagada(self):
        self.status = 'pagado'
        self.paid_at = timezone.now()
        self.save(update_fields=['status', 'paid_at', 'updated_at'])
