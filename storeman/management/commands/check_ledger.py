"""
Management command to replay the stock ledger and report drift.

Usage:
    python manage.py check_ledger
    python manage.py check_ledger --product 12
"""

import logging

from django.core.management.base import BaseCommand, CommandError

from storeman import stock

logger = logging.getLogger('storeman')


class Command(BaseCommand):
    """Check that every holder quantity equals the sum of its ledger."""

    help = 'Confere o estoque de cada produto/variante com a soma do seu histórico'

    def add_arguments(self, parser):
        parser.add_argument(
            '--product',
            type=int,
            help='Confere apenas este produto (ID) e suas variantes'
        )

    def handle(self, *args, **options):
        drifted = stock.drift(product=options['product'])

        if not drifted:
            self.stdout.write(self.style.SUCCESS('Histórico de estoque consistente'))
            return

        for row in drifted:
            logger.warning("stock.ledger.drift", extra=row)
            self.stdout.write(
                f"{row['level']}:{row['id']} {row['label']}: "
                f"quantidade={row['quantity']} histórico={row['ledger']} "
                f"diferença={row['difference']:+d}"
            )
        raise CommandError(f'{len(drifted)} estoque(s) divergente(s) do histórico')
