"""
Management command to list holders at or below their low-stock threshold.

Usage:
    python manage.py low_stock
"""

from django.core.management.base import BaseCommand

from storeman import stock


class Command(BaseCommand):
    """List low stock command."""

    help = 'Lista produtos e variantes com estoque baixo'

    def handle(self, *args, **options):
        low = stock.low_stock()

        for obj, quantity in low:
            self.stdout.write(f'{obj}: {quantity} (alerta em {obj.low_stock_threshold})')

        self.stdout.write(
            self.style.WARNING(f'{len(low)} item(ns) com estoque baixo') if low
            else self.style.SUCCESS('Nenhum item com estoque baixo')
        )
