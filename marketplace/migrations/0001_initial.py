import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models

import marketplace.models
import marketplace.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('full_name', models.CharField(blank=True, default='', max_length=150, verbose_name='full name')),
                ('phone_number', models.CharField(blank=True, default='', help_text='Optional. Enter phone number in local or international format.', max_length=20, validators=[marketplace.validators.validate_phone_number], verbose_name='phone number')),
                ('avatar', models.ImageField(blank=True, help_text='Optional. Upload a profile picture (max 5MB, formats: jpg, png, webp).', null=True, upload_to=marketplace.models.user_avatar_upload_path, validators=[marketplace.validators.validate_image], verbose_name='avatar')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['email'], name='user_email_idx')],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='MarketplaceProduct',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='name')),
                ('description', models.TextField(blank=True, default='', verbose_name='description')),
                ('price', models.DecimalField(decimal_places=2, help_text='Price per unit in IDR', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))], verbose_name='price')),
                ('image', models.ImageField(blank=True, null=True, upload_to=marketplace.models.product_image_upload_path, validators=[marketplace.validators.validate_image], verbose_name='image')),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('sold', 'Sold')], default='active', max_length=20, verbose_name='status')),
                ('moderation_status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', help_text='Products are listed publicly only once approved', max_length=20, verbose_name='moderation status')),
                ('is_sambatan', models.BooleanField(default=False, help_text='Whether the product can be bought through a Sambatan', verbose_name='sambatan product')),
                ('min_participants', models.PositiveIntegerField(blank=True, help_text='Smallest target quantity allowed for a Sambatan on this product', null=True, verbose_name='minimum participants')),
                ('max_participants', models.PositiveIntegerField(blank=True, help_text='Largest target quantity allowed for a Sambatan on this product', null=True, verbose_name='maximum participants')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('seller', models.ForeignKey(help_text='User selling this product', on_delete=django.db.models.deletion.CASCADE, related_name='products', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'marketplace product',
                'verbose_name_plural': 'marketplace products',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['seller'], name='product_seller_idx'),
                    models.Index(fields=['status', 'moderation_status'], name='product_status_mod_idx'),
                    models.Index(fields=['is_sambatan'], name='product_is_sambatan_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Sambatan',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('target_quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)], verbose_name='target quantity')),
                ('current_quantity', models.PositiveIntegerField(default=0, verbose_name='current quantity')),
                ('status', models.CharField(choices=[('open', 'Open'), ('closed', 'Closed'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='open', max_length=20, verbose_name='status')),
                ('expires_at', models.DateTimeField(blank=True, null=True, verbose_name='expires at')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('initiator', models.ForeignKey(help_text='User who started the campaign', on_delete=django.db.models.deletion.CASCADE, related_name='initiated_sambatans', to=settings.AUTH_USER_MODEL)),
                ('product', models.ForeignKey(help_text='Product bought through this campaign', on_delete=django.db.models.deletion.CASCADE, related_name='sambatans', to='marketplace.marketplaceproduct')),
            ],
            options={
                'verbose_name': 'sambatan',
                'verbose_name_plural': 'sambatan',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='sambatan_status_idx'),
                    models.Index(fields=['product', 'status'], name='sambatan_product_status_idx'),
                    models.Index(fields=['expires_at'], name='sambatan_expires_at_idx'),
                    models.Index(fields=['updated_at'], name='sambatan_updated_at_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SambatanParticipant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)], verbose_name='quantity')),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('verified', 'Verified'), ('cancelled', 'Cancelled')], default='pending', max_length=20, verbose_name='payment status')),
                ('payment_proof', models.FileField(blank=True, null=True, upload_to=marketplace.models.payment_proof_upload_path, validators=[marketplace.validators.validate_payment_proof], verbose_name='payment proof')),
                ('payment_method', models.CharField(blank=True, default='', max_length=50, verbose_name='payment method')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('participant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sambatan_participations', to=settings.AUTH_USER_MODEL)),
                ('sambatan', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='participants', to='marketplace.sambatan')),
            ],
            options={
                'verbose_name': 'sambatan participant',
                'verbose_name_plural': 'sambatan participants',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['sambatan', 'payment_status'], name='participant_payment_idx'),
                    models.Index(fields=['participant'], name='participant_user_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('sambatan', 'participant'), name='unique_participant_per_sambatan'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('new_participant', 'New participant'), ('quota_reached', 'Quota reached'), ('payment_verified', 'Payment verified'), ('payment_rejected', 'Payment rejected'), ('sambatan_completed', 'Sambatan completed'), ('sambatan_cancelled', 'Sambatan cancelled'), ('sambatan_expired', 'Sambatan expired'), ('sambatan_expired_initiator', 'Sambatan expired (initiator)'), ('refund_initiated', 'Refund initiated'), ('product_moderated', 'Product moderated')], max_length=40, verbose_name='type')),
                ('title', models.CharField(max_length=200, verbose_name='title')),
                ('content', models.TextField(verbose_name='content')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='metadata')),
                ('is_read', models.BooleanField(default=False, verbose_name='read')),
                ('read_at', models.DateTimeField(blank=True, null=True, verbose_name='read at')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'notification',
                'verbose_name_plural': 'notifications',
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['user', 'is_read'], name='notification_user_read_idx')],
            },
        ),
        migrations.CreateModel(
            name='Refund',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name='amount')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('processed', 'Processed'), ('rejected', 'Rejected')], default='pending', max_length=20, verbose_name='status')),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='reason')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('sambatan', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='refunds', to='marketplace.sambatan')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='refunds', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'refund',
                'verbose_name_plural': 'refunds',
                'ordering': ['-created_at'],
            },
        ),
    ]
