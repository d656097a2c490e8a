# apps/core/serializers.py

"""Conversión de modelos del core a dicts JSON"""


def serializar_academia(academia, con_directores=False):
    datos = {
        'id': academia.id,
        'name': academia.name,
        'address': academia.address,
        'phone': academia.phone,
        'website': academia.website,
        'logo_url': academia.logo_url,
        'timezone': academia.timezone,
        'status': academia.status,
        'created_at': academia.created_at,
        'updated_at': academia.updated_at,
    }
    if con_directores:
        datos['directors'] = [resumen_perfil(d) for d in academia.get_directores()]
    return datos


def resumen_perfil(usuario):
    """Forma corta usada en relaciones anidadas"""
    if usuario is None:
        return None
    return {
        'id': usuario.id,
        'first_name': usuario.first_name,
        'last_name': usuario.last_name,
        'email': usuario.email,
    }


def serializar_perfil(usuario):
    return {
        'id': usuario.id,
        'email': usuario.email,
        'first_name': usuario.first_name,
        'last_name': usuario.last_name,
        'phone': usuario.phone,
        'role': usuario.role,
        'academy_id': usuario.academy_id,
        'status': usuario.status,
        'additional_info': usuario.additional_info,
        'created_at': usuario.created_at,
        'updated_at': usuario.updated_at,
    }
