# apps/reportes/__init__.py

"""
Reportes - descargas en PDF, Excel y CSV

Estado de cuenta de un contrato (ReportLab), cuotas de la academia
(XlsxWriter) y listado de estudiantes con sus encargados (CSV).
"""
