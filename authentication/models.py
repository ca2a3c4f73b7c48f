from django.db import models


class PendingRegistration(models.Model):
    """
    A registration waiting for email verification.
    One row per email: a new issuance overwrites the previous one, so
    earlier codes and links stop matching (last-issued-wins).
    """
    email = models.EmailField(
        max_length=254,
        unique=True,
        verbose_name="Email",
        help_text="Email normalizado (minúsculas, sin espacios)"
    )
    display_name = models.CharField(max_length=255, verbose_name="Nombre")
    is_jury = models.BooleanField(default=False, verbose_name="Jurado")

    # Artifact material (never the clear code)
    code_hash = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name="Hash Código",
        help_text="SHA-256 del código de verificación"
    )
    link_nonce = models.CharField(max_length=64, verbose_name="Nonce del Link")

    issued_at = models.DateTimeField(verbose_name="Fecha Emisión")

    class Meta:
        verbose_name = "Registro Pendiente"
        verbose_name_plural = "Registros Pendientes"
        ordering = ['-issued_at']

    def __str__(self):
        return f"Pendiente #{self.id} ({'jurado' if self.is_jury else 'votante'})"

    def is_expired(self, now, ttl):
        """TTL is a timedelta; expiry is strict (exactly TTL is still valid)."""
        return now - self.issued_at > ttl


class RegisteredUser(models.Model):
    """
    Record-keeping copy of each verified identity (the 'users' collection).
    Write-only from the voting core; personal data is encrypted.
    """
    ROLE_CHOICES = [
        ('voter', 'Votante'),
        ('jury', 'Jurado'),
    ]

    session_id = models.CharField(
        max_length=64,
        unique=True,
        verbose_name="ID Sesión"
    )
    email_hash = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name="Hash Email",
        help_text="SHA-256 del email normalizado"
    )
    email_encrypted = models.TextField(verbose_name="Email Cifrado")
    name_encrypted = models.TextField(
        null=True,
        blank=True,
        verbose_name="Nombre Cifrado"
    )
    role = models.CharField(
        max_length=16,
        choices=ROLE_CHOICES,
        default='voter',
        verbose_name="Rol"
    )
    is_jury = models.BooleanField(default=False, verbose_name="Jurado")

    created_at = models.DateTimeField(verbose_name="Fecha Creación")
    last_verified_at = models.DateTimeField(verbose_name="Última Verificación")

    class Meta:
        verbose_name = "Usuario Verificado"
        verbose_name_plural = "Usuarios Verificados"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email_hash'], name='registered_user_email_idx'),
        ]

    def __str__(self):
        # No personal data in the admin
        return f"Usuario #{self.id} - {self.get_role_display()}"
