from django.core.management.base import BaseCommand

from pickups.services.dispatch_scheduler import DispatchScheduler


class Command(BaseCommand):
    help = 'Run the dispatch jobs: automatic pickups, reminders and overdue escalation'

    def add_arguments(self, parser):
        parser.add_argument('--once', action='store_true', help='Run every job once and exit')

    def handle(self, *args, **options):
        scheduler = DispatchScheduler().build_scheduler()

        if options['once']:
            results = scheduler.run_pending_once()
            for name, result in results.items():
                self.stdout.write(f"{name}: {result}")
            return

        self.stdout.write(self.style.SUCCESS('Starting dispatch scheduler...'))
        scheduler.start()
        try:
            scheduler.wait()
        except KeyboardInterrupt:
            self.stdout.write("Dispatch scheduler stopped")
        finally:
            scheduler.stop()
