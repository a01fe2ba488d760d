"""
Management command that recomputes every denormalized counter from its
ledger and reports what had drifted.

Usage: python manage.py reconcile_counters [--dry-run]
"""

from django.core.management.base import BaseCommand

from social.counters import reconcile_counters


class Command(BaseCommand):
    help = 'Recompute post and profile counters from ledger cardinality'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report drift without writing corrections'
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        drift = reconcile_counters(dry_run=dry_run)

        for label, rows in (('post', drift['posts']), ('user', drift['profiles'])):
            for pk, fields in rows.items():
                changes = ', '.join(
                    f'{field} {stored} -> {actual}' for field, (stored, actual) in fields.items()
                )
                self.stdout.write(f'{label} {pk}: {changes}')

        total = len(drift['posts']) + len(drift['profiles'])
        if not total:
            self.stdout.write(self.style.SUCCESS('All counters consistent.'))
        elif dry_run:
            self.stdout.write(self.style.WARNING(f'{total} rows drifted (dry run, nothing written).'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Corrected {total} rows.'))
