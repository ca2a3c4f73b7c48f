from django.db import migrations, models

import voting.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Project',
            fields=[
                ('id', models.CharField(default=voting.models.generate_project_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255, verbose_name='Nombre')),
                ('description', models.TextField(verbose_name='Descripción')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Fecha Creación')),
            ],
            options={
                'verbose_name': 'Proyecto',
                'verbose_name_plural': 'Proyectos',
                'ordering': ['created_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Vote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('project_id', models.CharField(db_index=True, max_length=64, verbose_name='Proyecto')),
                ('user_identity', models.CharField(help_text='Email normalizado del votante', max_length=254, verbose_name='Identidad')),
                ('weight', models.PositiveSmallIntegerField(choices=[(1, 'Votante'), (2, 'Jurado')], default=1, verbose_name='Peso')),
                ('timestamp', models.DateTimeField(verbose_name='Fecha y Hora')),
            ],
            options={
                'verbose_name': 'Voto',
                'verbose_name_plural': 'Votos',
                'ordering': ['-timestamp'],
                'indexes': [models.Index(fields=['user_identity', 'timestamp'], name='vote_identity_ts_idx')],
            },
        ),
        migrations.CreateModel(
            name='Winner',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('winner_id', models.CharField(blank=True, max_length=64, null=True, verbose_name='Proyecto Ganador')),
                ('announced_at', models.DateTimeField(blank=True, null=True, verbose_name='Fecha Anuncio')),
            ],
            options={
                'verbose_name': 'Ganador',
                'verbose_name_plural': 'Ganador',
            },
        ),
    ]
