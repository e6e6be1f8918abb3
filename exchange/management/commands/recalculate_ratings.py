# Recalculate Ratings Management Command
from django.core.management.base import BaseCommand, CommandError

from exchange.ratings import recompute_all


class Command(BaseCommand):
    help = 'Recalculates member ratings from their non-flagged feedback to ensure data consistency.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the command without saving changes to the database.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for bulk processing.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        if batch_size < 1:
            raise CommandError('--batch-size must be a positive integer.')

        self.stdout.write('Recalculating user ratings...')
        changes = recompute_all(batch_size=batch_size, dry_run=dry_run)

        for user_id, (old_average, old_total), (new_average, new_total) in changes:
            prefix = '[DRY-RUN] ' if dry_run else ''
            self.stdout.write(
                f'  {prefix}User {user_id}: Rating {old_average} -> {new_average}, '
                f'Count {old_total} -> {new_total}'
            )

        self.stdout.write(f'{len(changes)} users out of date.')

        if dry_run:
            self.stdout.write(self.style.SUCCESS('Dry run completed. No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS('Recalculation completed successfully.'))
