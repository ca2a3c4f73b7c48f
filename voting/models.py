import secrets

from django.db import models


def generate_project_id():
    return secrets.token_hex(10)


class Project(models.Model):
    """
    A project competing in the pitch.
    Ids are opaque strings so votes can reference them without a foreign key.
    """
    id = models.CharField(
        primary_key=True,
        max_length=64,
        default=generate_project_id,
        editable=False,
    )
    name = models.CharField(max_length=255, verbose_name="Nombre")
    description = models.TextField(verbose_name="Descripción")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Fecha Creación")

    class Meta:
        verbose_name = "Proyecto"
        verbose_name_plural = "Proyectos"
        ordering = ['created_at', 'id']

    def __str__(self):
        return self.name


class Vote(models.Model):
    """
    Append-only ledger of cast votes.

    NOTE: there is no uniqueness constraint on (identity, day). The
    one-vote-per-day rule is checked before insert, so two racing
    submissions from the same identity can both be recorded.
    """
    WEIGHT_CHOICES = [
        (1, 'Votante'),
        (2, 'Jurado'),
    ]

    # Plain string: votes for unknown/deleted projects are kept as orphans
    project_id = models.CharField(max_length=64, db_index=True, verbose_name="Proyecto")
    user_identity = models.CharField(
        max_length=254,
        verbose_name="Identidad",
        help_text="Email normalizado del votante"
    )
    weight = models.PositiveSmallIntegerField(
        choices=WEIGHT_CHOICES,
        default=1,
        verbose_name="Peso"
    )
    timestamp = models.DateTimeField(verbose_name="Fecha y Hora")

    class Meta:
        verbose_name = "Voto"
        verbose_name_plural = "Votos"
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['user_identity', 'timestamp'], name='vote_identity_ts_idx'),
        ]

    def __str__(self):
        return f"Voto #{self.id} para {self.project_id} (peso {self.weight})"


class Winner(models.Model):
    """
    Singleton announcement of the winning project (always pk=1).
    Writes are last-write-wins.
    """
    SINGLETON_PK = 1

    winner_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        verbose_name="Proyecto Ganador"
    )
    announced_at = models.DateTimeField(null=True, blank=True, verbose_name="Fecha Anuncio")

    class Meta:
        verbose_name = "Ganador"
        verbose_name_plural = "Ganador"

    def __str__(self):
        return f"Ganador: {self.winner_id or '-'}"

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        return cls.objects.filter(pk=cls.SINGLETON_PK).first()

    @classmethod
    def declare(cls, winner_id, announced_at):
        winner, _ = cls.objects.update_or_create(
            pk=cls.SINGLETON_PK,
            defaults={'winner_id': winner_id, 'announced_at': announced_at},
        )
        return winner
