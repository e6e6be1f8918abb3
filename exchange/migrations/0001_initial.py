from decimal import Decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


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
                ('display_name', models.CharField(blank=True, default='', max_length=150, verbose_name='display name')),
                ('location', models.CharField(blank=True, default='', max_length=200, verbose_name='location')),
                ('availability', models.CharField(blank=True, default='', help_text='Free-form availability, e.g. "weekends".', max_length=200, verbose_name='availability')),
                ('skills_offered', models.JSONField(blank=True, default=list, help_text='Skill tags this member can teach.', verbose_name='skills offered')),
                ('skills_wanted', models.JSONField(blank=True, default=list, help_text='Skill tags this member wants to learn.', verbose_name='skills wanted')),
                ('is_public', models.BooleanField(default=True, verbose_name='public profile')),
                ('status', models.CharField(choices=[('active', 'Active'), ('banned', 'Banned')], default='active', max_length=10, verbose_name='status')),
                ('ban_reason', models.CharField(blank=True, default='', max_length=500, verbose_name='ban reason')),
                ('banned_at', models.DateTimeField(blank=True, null=True, verbose_name='banned at')),
                ('average_rating', models.DecimalField(decimal_places=1, default=Decimal('0.0'), help_text='Mean of non-flagged feedback ratings, one decimal.', max_digits=2, validators=[django.core.validators.MinValueValidator(Decimal('0.0'), message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(Decimal('5.0'), message='Rating cannot exceed 5.0.')], verbose_name='average rating')),
                ('total_reviews', models.PositiveIntegerField(default=0, verbose_name='total reviews')),
                ('completed_swaps', models.PositiveIntegerField(default=0, verbose_name='completed swaps')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Swap',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('offered_skill', models.CharField(max_length=100, verbose_name='offered skill')),
                ('offered_skill_description', models.TextField(blank=True, default='', verbose_name='offered skill description')),
                ('offered_skill_hours', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1, message='Estimated hours must be at least 1.'), django.core.validators.MaxValueValidator(100, message='Estimated hours must be at most 100.')], verbose_name='offered skill estimated hours')),
                ('requested_skill', models.CharField(max_length=100, verbose_name='requested skill')),
                ('requested_skill_description', models.TextField(blank=True, default='', verbose_name='requested skill description')),
                ('requested_skill_hours', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1, message='Estimated hours must be at least 1.'), django.core.validators.MaxValueValidator(100, message='Estimated hours must be at most 100.')], verbose_name='requested skill estimated hours')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('in_progress', 'In progress'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20, verbose_name='status')),
                ('message', models.CharField(blank=True, default='', max_length=500, verbose_name='message')),
                ('rejection_reason', models.CharField(blank=True, default='', max_length=500, verbose_name='rejection reason')),
                ('cancellation_reason', models.CharField(blank=True, default='', max_length=500, verbose_name='cancellation reason')),
                ('scheduled_date', models.DateTimeField(blank=True, null=True, verbose_name='scheduled date')),
                ('requester_completed', models.BooleanField(default=False, verbose_name='requester marked complete')),
                ('provider_completed', models.BooleanField(default=False, verbose_name='provider marked complete')),
                ('contact_exchanged', models.BooleanField(default=False, verbose_name='contact exchanged')),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('flagged', models.BooleanField(default=False, verbose_name='flagged')),
                ('flag_reason', models.CharField(blank=True, default='', max_length=500, verbose_name='flag reason')),
                ('admin_notes', models.TextField(blank=True, default='', verbose_name='admin notes')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('cancelled_by', models.ForeignKey(blank=True, help_text='Participant who cancelled; empty for system cancellations', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('provider', models.ForeignKey(blank=True, help_text='Member asked to provide the requested skill', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='swaps_provided', to=settings.AUTH_USER_MODEL)),
                ('requester', models.ForeignKey(blank=True, help_text='Member who proposed the swap', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='swaps_requested', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'swap',
                'verbose_name_plural': 'swaps',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Feedback',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rating', models.PositiveSmallIntegerField(help_text='Rating from 1 to 5 stars', validators=[django.core.validators.MinValueValidator(1, message='Rating must be at least 1.'), django.core.validators.MaxValueValidator(5, message='Rating must be at most 5.')], verbose_name='rating')),
                ('comment', models.TextField(blank=True, default='', max_length=1000, verbose_name='comment')),
                ('skill_quality', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('communication', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('reliability', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('professionalism', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('is_public', models.BooleanField(default=True, verbose_name='public')),
                ('flagged', models.BooleanField(default=False, verbose_name='flagged')),
                ('flag_reason', models.CharField(blank=True, default='', max_length=500, verbose_name='flag reason')),
                ('admin_reviewed', models.BooleanField(default=False, verbose_name='admin reviewed')),
                ('admin_notes', models.TextField(blank=True, default='', verbose_name='admin notes')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('reviewee', models.ForeignKey(help_text='User receiving the feedback', on_delete=django.db.models.deletion.CASCADE, related_name='feedback_received', to=settings.AUTH_USER_MODEL)),
                ('reviewer', models.ForeignKey(help_text='User writing the feedback', on_delete=django.db.models.deletion.CASCADE, related_name='feedback_given', to=settings.AUTH_USER_MODEL)),
                ('swap', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='feedback', to='exchange.swap')),
            ],
            options={
                'verbose_name': 'feedback',
                'verbose_name_plural': 'feedback',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['status'], name='exchange_us_status_8f3c1a_idx'),
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['average_rating'], name='exchange_us_average_2b7d4e_idx'),
        ),
        migrations.AddIndex(
            model_name='swap',
            index=models.Index(fields=['requester', 'status'], name='exchange_sw_request_5a1e9c_idx'),
        ),
        migrations.AddIndex(
            model_name='swap',
            index=models.Index(fields=['provider', 'status'], name='exchange_sw_provide_c4d2b7_idx'),
        ),
        migrations.AddIndex(
            model_name='swap',
            index=models.Index(fields=['status', 'created_at'], name='exchange_sw_status_9e0f3d_idx'),
        ),
        migrations.AddIndex(
            model_name='swap',
            index=models.Index(fields=['offered_skill', 'requested_skill'], name='exchange_sw_offered_71b8a2_idx'),
        ),
        migrations.AddConstraint(
            model_name='swap',
            constraint=models.UniqueConstraint(condition=models.Q(('status', 'pending')), fields=('requester', 'provider', 'offered_skill', 'requested_skill'), name='unique_pending_swap_request'),
        ),
        migrations.AddIndex(
            model_name='feedback',
            index=models.Index(fields=['reviewee', 'created_at'], name='exchange_fe_reviewe_3d6a0f_idx'),
        ),
        migrations.AddIndex(
            model_name='feedback',
            index=models.Index(fields=['reviewer', 'created_at'], name='exchange_fe_reviewe_8b2c5e_idx'),
        ),
        migrations.AddIndex(
            model_name='feedback',
            index=models.Index(fields=['rating'], name='exchange_fe_rating_4f7e1b_idx'),
        ),
        migrations.AddConstraint(
            model_name='feedback',
            constraint=models.UniqueConstraint(fields=('swap', 'reviewer'), name='unique_feedback_per_swap_reviewer'),
        ),
    ]
