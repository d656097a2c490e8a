# tests/test_reportes.py

import csv
import io
from datetime import date

import pytest

from apps.contratos.services import crear_contrato

pytestmark = pytest.mark.django_db


@pytest.fixture
def contrato(encargado, academia, catalogo):
    contrato = crear_contrato(
        academia, encargado, catalogo.matriculas, 30000,
        date(catalogo.anio, 2, 3), date(catalogo.anio, 3, 31),
    )
    contrato.cuotas.first().marcar_pagada()
    return contrato


def test_pdf_del_contrato(cliente_de, director, contrato):
    response = cliente_de(director).get(f'/reportes/contratos/{contrato.id}/pdf/')

    assert response.status_code == 200
    assert response['Content-Type'] == 'application/pdf'
    assert f'contrato_{contrato.id}.pdf' in response['Content-Disposition']
    assert response.content.startswith(b'%PDF')


def test_pdf_de_otra_academia(cliente_de, director_sur, super_admin, contrato):
    assert cliente_de(director_sur).get(f'/reportes/contratos/{contrato.id}/pdf/').status_code == 404
    assert cliente_de(super_admin).get(f'/reportes/contratos/{contrato.id}/pdf/').status_code == 200


def test_cuotas_en_excel(cliente_de, director, contrato):
    response = cliente_de(director).get('/reportes/facturas/excel/')

    assert response.status_code == 200
    assert response['Content-Type'] == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    assert response.content.startswith(b'PK')


def test_estudiantes_en_csv(cliente_de, director, encargado, catalogo):
    response = cliente_de(director).get('/reportes/estudiantes/csv/')

    contenido = response.content.decode('utf-8')
    assert contenido.startswith('\ufeff')

    filas = list(csv.reader(io.StringIO(contenido.lstrip('\ufeff'))))
    assert filas[0][0] == 'Nombre'
    assert [f[0] for f in filas[1:]] == ['Lucía', 'Mateo']
    assert filas[1][5] == encargado.email


def test_csv_solo_de_la_academia_propia(cliente_de, director_sur, catalogo):
    filas = cliente_de(director_sur).get('/reportes/estudiantes/csv/').content.decode('utf-8').splitlines()
    assert len(filas) == 1


def test_reportes_solo_para_gestores(cliente_de, encargado, profesor, contrato):
    assert cliente_de(encargado).get('/reportes/facturas/excel/').status_code == 403
    assert cliente_de(profesor).get('/reportes/estudiantes/csv/').status_code == 403
    assert cliente_de(encargado).get(f'/reportes/contratos/{contrato.id}/pdf/').status_code == 403


def test_reportes_sin_sesion(client, contrato):
    response = client.get('/reportes/facturas/excel/')
    assert response.status_code == 302
    assert response.url == '/login/?next=%2Freportes%2Ffacturas%2Fexcel%2F'
