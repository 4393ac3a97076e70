from django.core.management.base import BaseCommand, CommandError

from facturacion.afip.config import AFIPConfig, ConfigurationError
from facturacion.afip.service import build_batch_authorizer, pending_document_ids


class Command(BaseCommand):
    help = 'Solicita CAE a AFIP para los comprobantes pendientes'

    def add_arguments(self, parser):
        parser.add_argument(
            '--ids',
            nargs='+',
            type=int,
            help='IDs de comprobantes a autorizar (por defecto, todos los pendientes)',
        )
        parser.add_argument(
            '--limit',
            type=int,
            default=100,
            help='Límite de comprobantes pendientes a procesar (default: 100)',
        )
        parser.add_argument(
            '--pacing',
            type=float,
            help='Segundos mínimos entre solicitudes a AFIP',
        )
        parser.add_argument(
            '--reintentos',
            type=int,
            help='Intentos máximos por comprobante ante errores de comunicación',
        )

    def handle(self, *args, **options):
        try:
            config = AFIPConfig.from_settings()
        except ConfigurationError as exc:
            raise CommandError(str(exc)) from exc

        document_ids = options['ids'] or pending_document_ids(options['limit'])
        if not document_ids:
            self.stdout.write(self.style.SUCCESS('✅ No hay comprobantes pendientes de CAE'))
            return

        self.stdout.write(f'📊 Autorizando {len(document_ids)} comprobantes ({config.environment.value})')

        authorizer = build_batch_authorizer(
            config,
            pacing_interval=options['pacing'],
            max_attempts=options['reintentos'],
        )
        batch = authorizer.authorize_batch(document_ids)

        for document_id in batch.succeeded:
            result = batch.results[document_id]
            self.stdout.write(f'   {document_id}: CAE {result.authorization_code} (número {result.number})')

        for failure in batch.failed:
            self.stdout.write(self.style.ERROR(f'❌ Comprobante {failure.document_id}: {failure.error}'))

        self.stdout.write(
            self.style.SUCCESS(f'✅ Completado: {len(batch.succeeded)} aprobados de {batch.total}')
        )
        if batch.failed:
            self.stdout.write(f'📋 Quedan {len(batch.failed)} comprobantes con error o rechazo')
