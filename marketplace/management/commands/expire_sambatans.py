# Expire Sambatans Management Command
from django.core.management.base import BaseCommand
from django.utils import timezone

from marketplace.services import expire_sambatans


class Command(BaseCommand):
    help = 'Cancels open Sambatan campaigns whose deadline has passed and issues refunds.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the campaigns that would expire without changing anything.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        now = timezone.now()

        self.stdout.write(f'Checking for expired Sambatan campaigns at {now.isoformat()}...')
        results = expire_sambatans(now=now, dry_run=dry_run)

        if not results:
            self.stdout.write('No expired Sambatan campaigns found.')
            return

        failures = 0
        for result in results:
            if dry_run:
                self.stdout.write(f"  [DRY-RUN] Sambatan {result['id']} would expire")
            elif result['success']:
                self.stdout.write(
                    f"  Sambatan {result['id']}: expired, "
                    f"{result['refunds']} refund(s), "
                    f"{result['cancelled_participants']} participation(s) cancelled"
                )
            else:
                failures += 1
                self.stdout.write(self.style.ERROR(f"  Sambatan {result['id']}: {result['error']}"))

        if dry_run:
            self.stdout.write(self.style.SUCCESS(f'Dry run completed. {len(results)} campaign(s) would expire.'))
        elif failures:
            self.stdout.write(self.style.WARNING(
                f'Processed {len(results)} campaign(s) with {failures} failure(s).'
            ))
        else:
            self.stdout.write(self.style.SUCCESS(f'Expired {len(results)} campaign(s) successfully.'))
