# apps/reportes/views.py

import csv
import logging
from io import BytesIO

from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone

# ReportLab para PDF
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

# XlsxWriter para Excel
import xlsxwriter

from apps.academico.models import Estudiante
from apps.contratos.models import Contrato, CuotaContrato
from apps.core.api import uuid_o_none
from apps.core.permissions import CompasPermissions, ajax_requiere_permiso

logger = logging.getLogger(__name__)


def _da_academia(request, queryset, campo='academy'):
    """
    Limita el queryset a la academia del gestor

    El super admin ve todo, o solo una academia con ?academy_id=.
    """
    usuario = request.user
    if not usuario.es_super_admin:
        return queryset.filter(**{f'{campo}_id': usuario.academy_id})
    academy_id = uuid_o_none(request.GET.get('academy_id'))
    if academy_id:
        return queryset.filter(**{f'{campo}_id': academy_id})
    return queryset


def _estilo_tabla(color_cabecera, color_cuerpo):
    return TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), color_cabecera),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 11),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 10),
        ('BACKGROUND', (0, 1), (-1, -1), color_cuerpo),
        ('GRID', (0, 0), (-1, -1), 1, colors.black)
    ])


def _monto(valor):
    return f"Q {valor:,.2f}"


@ajax_requiere_permiso(CompasPermissions.is_gestor)
def contrato_pdf(request, contrato_id):
    """
    Estado de cuenta de un contrato en PDF
    """
    contrato = get_object_or_404(
        _da_academia(request, Contrato.objects.select_related('academy', 'guardian')),
        id=contrato_id,
    )

    response = HttpResponse(content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="contrato_{contrato.id}.pdf"'

    doc = SimpleDocTemplate(response, pagesize=A4)
    story = []

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'CustomTitle',
        parent=styles['Heading1'],
        fontSize=20,
        spaceAfter=24,
        textColor=colors.darkblue
    )

    heading_style = ParagraphStyle(
        'CustomHeading',
        parent=styles['Heading2'],
        fontSize=14,
        spaceAfter=12,
        textColor=colors.darkblue
    )

    encargado = contrato.guardian
    story.append(Paragraph(f"Estado de cuenta - {contrato.academy.name}", title_style))
    story.append(Paragraph(f"Encargado: {encargado.get_full_name() or encargado.email}", styles['Normal']))
    story.append(Paragraph(f"Generado el {timezone.localtime():%d/%m/%Y %H:%M}", styles['Normal']))
    story.append(Spacer(1, 20))

    # Datos del contrato
    story.append(Paragraph("Contrato", heading_style))

    info_table = Table([
        ['Campo', 'Valor'],
        ['Academia', contrato.academy.name],
        ['Encargado', encargado.get_full_name() or encargado.email],
        ['Email', encargado.email],
        ['Vigencia', f"{contrato.start_date:%d/%m/%Y} - {contrato.end_date:%d/%m/%Y}"],
        ['Cuota mensual', _monto(contrato.monthly_amount)],
    ])
    info_table.setStyle(_estilo_tabla(colors.grey, colors.beige))
    story.append(info_table)
    story.append(Spacer(1, 20))

    # Matrículas cubiertas
    story.append(Paragraph("Cursos contratados", heading_style))

    vinculos = contrato.vinculos.select_related(
        'course_registration__student',
        'course_registration__subject',
        'course_registration__period',
        'course_registration__profile',
    )
    cursos_data = [['Estudiante', 'Materia', 'Periodo', 'Profesor']]
    for vinculo in vinculos:
        matricula = vinculo.course_registration
        profesor = matricula.profile
        cursos_data.append([
            matricula.student.nombre_completo,
            matricula.subject.name,
            str(matricula.period),
            (profesor.get_full_name() or profesor.email) if profesor else '-',
        ])

    cursos_table = Table(cursos_data)
    cursos_table.setStyle(_estilo_tabla(colors.blue, colors.lightblue))
    story.append(cursos_table)
    story.append(Spacer(1, 20))

    # Cuotas
    story.append(Paragraph("Cuotas", heading_style))

    cuotas = list(contrato.cuotas.order_by('month'))
    cuotas_data = [['Mes', 'Monto', 'Estado', 'Pagada el']]
    for cuota in cuotas:
        cuotas_data.append([
            f"{cuota.month:%m/%Y}",
            _monto(cuota.amount),
            cuota.get_status_display(),
            f"{timezone.localtime(cuota.paid_at):%d/%m/%Y}" if cuota.paid_at else '-',
        ])

    total = sum(c.amount for c in cuotas)
    pagado = sum(c.amount for c in cuotas if c.pagada)
    cuotas_data.append(['Total', _monto(total), '', ''])
    cuotas_data.append(['Pagado', _monto(pagado), '', ''])
    cuotas_data.append(['Pendiente', _monto(total - pagado), '', ''])

    cuotas_table = Table(cuotas_data)
    cuotas_table.setStyle(_estilo_tabla(colors.green, colors.lightgreen))
    story.append(cuotas_table)

    story.append(Spacer(1, 30))
    story.append(Paragraph("Reporte generado por Compás", styles['Normal']))

    doc.build(story)
    logger.info("PDF del contrato %s generado por %s", contrato.id, request.user.email)
    return response


@ajax_requiere_permiso(CompasPermissions.is_gestor)
def cuotas_excel(request):
    """
    Cuotas de la academia en Excel: una hoja de detalle y una de resumen
    """
    cuotas = _da_academia(
        request,
        CuotaContrato.objects.select_related('contract__guardian', 'contract__academy'),
        campo='contract__academy',
    ).order_by('month', 'contract__guardian__last_name')

    output = BytesIO()
    workbook = xlsxwriter.Workbook(output, {'in_memory': True, 'remove_timezone': True})

    header_format = workbook.add_format({
        'bold': True,
        'font_color': 'white',
        'bg_color': '#366092',
        'border': 1
    })
    cell_format = workbook.add_format({'border': 1})
    date_format = workbook.add_format({'num_format': 'dd/mm/yyyy', 'border': 1})
    money_format = workbook.add_format({'num_format': '#,##0.00', 'border': 1})

    # Hoja 1: detalle
    sheet = workbook.add_worksheet('Cuotas')
    headers = ['Academia', 'Encargado', 'Email', 'Mes', 'Monto', 'Estado', 'Pagada el']
    for col, header in enumerate(headers):
        sheet.write(0, col, header, header_format)

    total = pagado = 0
    pendientes = 0
    for row, cuota in enumerate(cuotas, 1):
        encargado = cuota.contract.guardian
        sheet.write(row, 0, cuota.contract.academy.name, cell_format)
        sheet.write(row, 1, encargado.get_full_name() or encargado.email, cell_format)
        sheet.write(row, 2, encargado.email, cell_format)
        sheet.write_datetime(row, 3, cuota.month, date_format)
        sheet.write_number(row, 4, float(cuota.amount), money_format)
        sheet.write(row, 5, cuota.get_status_display(), cell_format)
        if cuota.paid_at:
            sheet.write_datetime(row, 6, timezone.localtime(cuota.paid_at), date_format)
        else:
            sheet.write_blank(row, 6, None, cell_format)

        total += cuota.amount
        if cuota.pagada:
            pagado += cuota.amount
        else:
            pendientes += 1

    sheet.set_column('A:C', 25)
    sheet.set_column('D:G', 14)

    # Hoja 2: resumen
    resumen = workbook.add_worksheet('Resumen')
    resumen.write('A1', 'RESUMEN DE CUOTAS', header_format)
    resumen.write('A3', 'Monto total:', header_format)
    resumen.write_number('B3', float(total), money_format)
    resumen.write('A4', 'Monto pagado:', header_format)
    resumen.write_number('B4', float(pagado), money_format)
    resumen.write('A5', 'Monto pendiente:', header_format)
    resumen.write_number('B5', float(total - pagado), money_format)
    resumen.write('A6', 'Cuotas pendientes:', header_format)
    resumen.write_number('B6', pendientes, cell_format)
    resumen.set_column('A:B', 20)

    workbook.close()
    output.seek(0)

    response = HttpResponse(
        output.read(),
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    response['Content-Disposition'] = f'attachment; filename="cuotas_{timezone.localdate():%Y%m%d}.xlsx"'

    return response


@ajax_requiere_permiso(CompasPermissions.is_gestor)
def estudiantes_csv(request):
    """
    Estudiantes de la academia con su encargado (CSV UTF-8 con BOM)
    """
    estudiantes = _da_academia(request, Estudiante.objects.vigentes()).prefetch_related(
        'guardian_links__guardian'
    ).order_by('last_name', 'first_name')

    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = 'attachment; filename="estudiantes.csv"'
    response.write('\ufeff')  # BOM para Excel

    writer = csv.writer(response)
    writer.writerow([
        'Nombre', 'Apellido', 'Fecha de nacimiento', 'Estado',
        'Encargado', 'Email del encargado', 'Teléfono del encargado', 'Parentesco'
    ])

    for estudiante in estudiantes:
        vinculo = next(iter(estudiante.guardian_links.all()), None)
        encargado = vinculo.guardian if vinculo else None
        writer.writerow([
            estudiante.first_name,
            estudiante.last_name,
            estudiante.date_of_birth.isoformat() if estudiante.date_of_birth else '',
            estudiante.get_enrollment_status_display(),
            encargado.get_full_name() if encargado else '',
            encargado.email if encargado else '',
            encargado.phone if encargado else '',
            vinculo.relationship if vinculo else '',
        ])

    return response
