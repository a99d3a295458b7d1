"""
Initial migration for Storeman models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


STATUS_CHOICES = [
    ('pending', 'Pendente'),
    ('processing', 'Em preparo'),
    ('shipped', 'Enviado'),
    ('delivered', 'Entregue'),
    ('cancelled', 'Cancelado'),
    ('confirmed', 'Confirmado'),
    ('ready', 'Pronto para retirada'),
    ('picked_up', 'Retirado'),
]

MOVE_KIND_CHOICES = [
    ('order_placed', 'Pedido realizado'),
    ('order_cancelled', 'Pedido cancelado'),
    ('order_refunded', 'Pedido reembolsado'),
    ('restock', 'Reposição'),
    ('manual_adjustment', 'Ajuste manual'),
    ('damaged', 'Avaria'),
    ('import', 'Importação'),
    ('variant_created', 'Variante criada'),
    ('mode_sync', 'Sincronização de modo'),
]

DAY_CHOICES = [
    (0, 'Sunday'),
    (1, 'Monday'),
    (2, 'Tuesday'),
    (3, 'Wednesday'),
    (4, 'Thursday'),
    (5, 'Friday'),
    (6, 'Saturday'),
]


class Migration(migrations.Migration):
    """Create Storeman models: Product, Variant, Pickup*, Order, Move, OrderItem."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Nome')),
                ('slug', models.SlugField(max_length=200, unique=True, verbose_name='Slug')),
                ('sku_prefix', models.CharField(blank=True, default='', max_length=50, verbose_name='Prefixo do SKU')),
                ('price', models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name='Preço')),
                ('inventory_mode', models.CharField(choices=[('untracked', 'Sem controle'), ('product', 'Por produto'), ('variant', 'Por variante')], default='untracked', max_length=20, verbose_name='Controle de estoque')),
                ('quantity', models.PositiveIntegerField(default=0, help_text='Usado apenas no controle por produto. Alterado somente via Move.', verbose_name='Quantidade')),
                ('low_stock_threshold', models.PositiveIntegerField(default=5, verbose_name='Alerta de estoque baixo')),
                ('is_available', models.BooleanField(default=True, help_text='Disponibilidade manual, independente do estoque.', verbose_name='Disponível')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Produto',
                'verbose_name_plural': 'Produtos',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Variant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(blank=True, default='', max_length=200, verbose_name='Nome')),
                ('sku', models.CharField(max_length=100, unique=True, verbose_name='SKU')),
                ('price', models.DecimalField(blank=True, decimal_places=2, help_text='Vazio = preço do produto', max_digits=10, null=True, verbose_name='Preço')),
                ('quantity', models.PositiveIntegerField(default=0, help_text='Alterado somente via Move.', verbose_name='Quantidade')),
                ('low_stock_threshold', models.PositiveIntegerField(default=5, verbose_name='Alerta de estoque baixo')),
                ('is_available', models.BooleanField(default=True, verbose_name='Disponível')),
                ('is_default', models.BooleanField(db_index=True, default=False, help_text='Criada automaticamente para controle por produto ou sem controle.', verbose_name='Variante padrão')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='variants', to='storeman.product', verbose_name='Produto')),
            ],
            options={
                'verbose_name': 'Variante',
                'verbose_name_plural': 'Variantes',
                'ordering': ['product', 'pk'],
            },
        ),
        migrations.CreateModel(
            name='PickupWindow',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('day_of_week', models.PositiveSmallIntegerField(choices=DAY_CHOICES, verbose_name='Dia da semana')),
                ('start_time', models.TimeField(verbose_name='Início')),
                ('end_time', models.TimeField(verbose_name='Fim')),
                ('active', models.BooleanField(default=True, verbose_name='Ativo')),
                ('capacity', models.PositiveIntegerField(blank=True, help_text='Vazio = capacidade padrão das configurações', null=True, verbose_name='Capacidade por horário')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Janela de Retirada',
                'verbose_name_plural': 'Janelas de Retirada',
                'ordering': ['day_of_week', 'start_time'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('day_of_week__lte', 6)), name='pickup_window_valid_day'),
                    models.CheckConstraint(condition=models.Q(('end_time__gt', models.F('start_time'))), name='pickup_window_end_after_start'),
                    models.CheckConstraint(condition=models.Q(('capacity__isnull', True), ('capacity__gt', 0), _connector='OR'), name='pickup_window_positive_capacity'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BlockedSlot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(db_index=True, verbose_name='Data')),
                ('start_time', models.TimeField(verbose_name='Início')),
                ('end_time', models.TimeField(verbose_name='Fim')),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Motivo')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Bloqueio de Horário',
                'verbose_name_plural': 'Bloqueios de Horário',
                'ordering': ['-date', 'start_time'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('end_time__gt', models.F('start_time'))), name='blocked_slot_end_after_start'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PickupSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.SlugField(default='default', unique=True, verbose_name='Nome')),
                ('active', models.BooleanField(default=True, verbose_name='Encomendas ativas')),
                ('lead_time_hours', models.PositiveIntegerField(default=48, verbose_name='Antecedência mínima (horas)')),
                ('slot_capacity', models.PositiveIntegerField(default=5, verbose_name='Pedidos por horário')),
                ('slot_minutes', models.PositiveIntegerField(default=30, verbose_name='Duração do horário (minutos)')),
                ('pickup_location', models.CharField(blank=True, default='', max_length=255, verbose_name='Local de retirada')),
                ('pickup_phone', models.CharField(blank=True, default='', max_length=50, verbose_name='Telefone')),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Configuração de Retirada',
                'verbose_name_plural': 'Configurações de Retirada',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('slot_capacity__gt', 0), ('slot_minutes__gt', 0)), name='pickup_settings_positive_values'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.CharField(max_length=40, unique=True, verbose_name='Número')),
                ('kind', models.CharField(choices=[('retail', 'Varejo'), ('fundraiser', 'Campanha'), ('pickup', 'Retirada agendada')], db_index=True, default='retail', max_length=20, verbose_name='Tipo')),
                ('status', models.CharField(choices=STATUS_CHOICES, db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('payment_status', models.CharField(choices=[('pending', 'Pendente'), ('paid', 'Pago'), ('failed', 'Falhou'), ('refunded', 'Reembolsado')], default='pending', max_length=20, verbose_name='Pagamento')),
                ('payment_reference', models.CharField(blank=True, default='', max_length=100, verbose_name='Referência do pagamento')),
                ('customer_name', models.CharField(max_length=200, verbose_name='Cliente')),
                ('customer_email', models.EmailField(max_length=254, verbose_name='E-mail')),
                ('customer_phone', models.CharField(blank=True, default='', max_length=50, verbose_name='Telefone')),
                ('pickup_date', models.DateField(blank=True, db_index=True, null=True, verbose_name='Data de retirada')),
                ('pickup_slot', models.CharField(blank=True, default='', help_text='Ex: 10:00-10:30', max_length=20, verbose_name='Horário de retirada')),
                ('total', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Total')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('stock_restored', models.BooleanField(default=False, help_text='Marcado quando cancelamento ou reembolso devolve o estoque.', verbose_name='Estoque devolvido')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
            ],
            options={
                'verbose_name': 'Pedido',
                'verbose_name_plural': 'Pedidos',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['kind', 'pickup_date', 'pickup_slot'], name='order_pickup_slot_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(models.Q(('kind', 'pickup'), _negated=True), ('pickup_date__isnull', False), _connector='OR'), name='order_pickup_requires_date'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Move',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=MOVE_KIND_CHOICES, db_index=True, max_length=30, verbose_name='Tipo')),
                ('delta', models.IntegerField(help_text='Positivo = entrada, Negativo = saída', verbose_name='Variação')),
                ('previous_quantity', models.PositiveIntegerField(verbose_name='Quantidade anterior')),
                ('new_quantity', models.PositiveIntegerField(verbose_name='Quantidade nova')),
                ('reason', models.CharField(help_text='Obrigatório. Ex: "Pedido ORD-20250101-0001 realizado"', max_length=255, verbose_name='Motivo')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='moves', to='storeman.product', verbose_name='Produto')),
                ('variant', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='moves', to='storeman.variant', verbose_name='Variante')),
                ('order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='moves', to='storeman.order', verbose_name='Pedido')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
            ],
            options={
                'verbose_name': 'Movimento',
                'verbose_name_plural': 'Movimentos',
                'ordering': ['timestamp', 'pk'],
                'indexes': [
                    models.Index(fields=['product', 'timestamp'], name='move_product_ts_idx'),
                    models.Index(fields=['variant', 'timestamp'], name='move_variant_ts_idx'),
                    models.Index(fields=['order', 'kind'], name='move_order_kind_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(models.Q(('product__isnull', False), ('variant__isnull', True)), models.Q(('product__isnull', True), ('variant__isnull', False)), _connector='OR'), name='move_exactly_one_target'),
                    models.CheckConstraint(condition=models.Q(('delta', models.F('new_quantity') - models.F('previous_quantity'))), name='move_delta_matches_quantities'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantidade')),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, verbose_name='Preço unitário')),
                ('total_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Total')),
                ('product_name', models.CharField(blank=True, default='', max_length=200, verbose_name='Produto')),
                ('variant_name', models.CharField(blank=True, default='', max_length=200, verbose_name='Variante')),
                ('sku', models.CharField(blank=True, default='', max_length=100, verbose_name='SKU')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='storeman.order', verbose_name='Pedido')),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='storeman.product', verbose_name='Produto')),
                ('variant', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='storeman.variant', verbose_name='Variante')),
                ('placed_move', models.ForeignKey(blank=True, help_text='Vazio quando o produto não controla estoque.', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='storeman.move', verbose_name='Movimento de saída')),
            ],
            options={
                'verbose_name': 'Item do Pedido',
                'verbose_name_plural': 'Itens do Pedido',
                'ordering': ['order', 'pk'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='order_item_positive_quantity'),
                ],
            },
        ),
    ]
