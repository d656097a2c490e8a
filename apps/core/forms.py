# apps/core/forms.py

from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError

CLASSE_INPUT = 'form-input w-full px-4 py-2 border rounded-lg'


class LoginForm(forms.Form):
    """Formulario de inicio de sesión (el email es el usuario)"""

    email = forms.CharField(
        label='Email',
        max_length=254,
        widget=forms.EmailInput(attrs={
            'class': CLASSE_INPUT,
            'placeholder': 'tu@email.com',
            'autofocus': True
        })
    )

    password = forms.CharField(
        label='Contraseña',
        widget=forms.PasswordInput(attrs={
            'class': CLASSE_INPUT,
            'placeholder': 'Tu contraseña'
        })
    )

    recordarme = forms.BooleanField(
        label='Recordarme',
        required=False,
        widget=forms.CheckboxInput(attrs={
            'class': 'form-checkbox h-4 w-4 text-indigo-600'
        })
    )


class RecuperarContrasenaForm(forms.Form):
    """Solicitud del enlace de recuperación"""

    email = forms.EmailField(
        label='Email',
        widget=forms.EmailInput(attrs={
            'class': CLASSE_INPUT,
            'placeholder': 'El email de tu cuenta'
        })
    )


class RestablecerContrasenaForm(forms.Form):
    """Nueva contraseña a partir del enlace recibido por email"""

    nueva_contrasena = forms.CharField(
        label='Nueva contraseña',
        min_length=settings.COMPAS_MIN_PASSWORD_LENGTH,
        widget=forms.PasswordInput(attrs={
            'class': CLASSE_INPUT,
            'placeholder': f'Mínimo {settings.COMPAS_MIN_PASSWORD_LENGTH} caracteres'
        })
    )

    confirmar_contrasena = forms.CharField(
        label='Confirmar contraseña',
        widget=forms.PasswordInput(attrs={
            'class': CLASSE_INPUT,
            'placeholder': 'Repite la contraseña'
        })
    )

    def clean_confirmar_contrasena(self):
        """Valida que las contraseñas coincidan"""
        nueva_contrasena = self.cleaned_data.get('nueva_contrasena')
        confirmar_contrasena = self.cleaned_data.get('confirmar_contrasena')

        if nueva_contrasena and confirmar_contrasena and nueva_contrasena != confirmar_contrasena:
            raise ValidationError("Las contraseñas no coinciden")

        return confirmar_contrasena
