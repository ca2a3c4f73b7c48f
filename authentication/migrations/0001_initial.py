from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='PendingRegistration',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('email', models.EmailField(help_text='Email normalizado (minúsculas, sin espacios)', max_length=254, unique=True, verbose_name='Email')),
                ('display_name', models.CharField(max_length=255, verbose_name='Nombre')),
                ('is_jury', models.BooleanField(default=False, verbose_name='Jurado')),
                ('code_hash', models.CharField(db_index=True, help_text='SHA-256 del código de verificación', max_length=64, verbose_name='Hash Código')),
                ('link_nonce', models.CharField(max_length=64, verbose_name='Nonce del Link')),
                ('issued_at', models.DateTimeField(verbose_name='Fecha Emisión')),
            ],
            options={
                'verbose_name': 'Registro Pendiente',
                'verbose_name_plural': 'Registros Pendientes',
                'ordering': ['-issued_at'],
            },
        ),
        migrations.CreateModel(
            name='RegisteredUser',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('session_id', models.CharField(max_length=64, unique=True, verbose_name='ID Sesión')),
                ('email_hash', models.CharField(db_index=True, help_text='SHA-256 del email normalizado', max_length=64, verbose_name='Hash Email')),
                ('email_encrypted', models.TextField(verbose_name='Email Cifrado')),
                ('name_encrypted', models.TextField(blank=True, null=True, verbose_name='Nombre Cifrado')),
                ('role', models.CharField(choices=[('voter', 'Votante'), ('jury', 'Jurado')], default='voter', max_length=16, verbose_name='Rol')),
                ('is_jury', models.BooleanField(default=False, verbose_name='Jurado')),
                ('created_at', models.DateTimeField(verbose_name='Fecha Creación')),
                ('last_verified_at', models.DateTimeField(verbose_name='Última Verificación')),
            ],
            options={
                'verbose_name': 'Usuario Verificado',
                'verbose_name_plural': 'Usuarios Verificados',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['email_hash'], name='registered_user_email_idx')],
            },
        ),
    ]
