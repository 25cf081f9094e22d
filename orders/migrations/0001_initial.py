import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('carts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False, help_text='Moment of purchase')),
                ('customer_name', models.CharField(help_text='Customer full name at the moment of purchase', max_length=301)),
                ('total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Cart total at the moment of purchase', max_digits=12)),
                ('cart', models.OneToOneField(help_text='Purchased cart this order was taken from', on_delete=django.db.models.deletion.PROTECT, related_name='order', to='carts.cart')),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
