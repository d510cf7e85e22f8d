from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='FileMetadata',
            fields=[
                ('id', models.UUIDField(editable=False, primary_key=True, serialize=False)),
                ('original_name', models.CharField(help_text='Filename supplied by the client', max_length=255)),
                ('mime_type', models.CharField(help_text='Validated MIME type', max_length=255)),
                ('size', models.PositiveBigIntegerField(help_text='File size in bytes')),
                ('storage_key', models.CharField(help_text='Object key: uploads/<id><ext>', max_length=1024)),
                ('storage_container', models.CharField(help_text='Bucket holding the object', max_length=255)),
                ('uploaded_at', models.DateTimeField()),
            ],
            options={
                'verbose_name': 'File metadata',
                'verbose_name_plural': 'File metadata',
                'db_table': 'file_metadata',
                'ordering': ['-uploaded_at', '-id'],
                'indexes': [models.Index(fields=['-uploaded_at', '-id'], name='file_metadata_recent_idx')],
            },
        ),
    ]
