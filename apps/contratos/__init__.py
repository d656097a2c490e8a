# apps/contratos/__init__.py

"""
Contratos - acuerdos de pago con los encargados

Cada contrato cubre matrículas de los estudiantes de un encargado y genera
una cuota mensual por cada mes de su vigencia.
"""
