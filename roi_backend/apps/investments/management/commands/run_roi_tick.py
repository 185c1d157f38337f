import json

from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_datetime

from roi_backend.apps.investments.services.driver import SchedulerDriver
from roi_backend.apps.investments.tick_status_store import TickStatusStore


class Command(BaseCommand):
    help = "Run one ROI accrual tick over every due investment, or show the last run."

    def add_arguments(self, parser):
        parser.add_argument(
            "--investment",
            dest="investment",
            help="Process only this investment id.",
        )
        parser.add_argument(
            "--status", action="store_true", help="Show the last recorded driver run."
        )

    def handle(self, *args, **options):
        if options["status"]:
            last = TickStatusStore().get()
            if last is None:
                raise CommandError("No ROI tick recorded in the last 24 hours.")
            self.stdout.write(json.dumps(last, indent=2))
            return

        driver = SchedulerDriver(status_store=TickStatusStore())

        if options["investment"]:
            results = driver.process_investment(options["investment"])
            for result in results:
                self.stdout.write(f"{type(result.effect).__name__}: {result.status.value}")
            if not results:
                self.stdout.write("Nothing due.")
            return

        summary = driver.run_once()
        self.stdout.write(json.dumps(summary.as_dict(), indent=2))
        if summary.failed:
            self.stdout.write(self.style.WARNING(f"{summary.failed} investments failed; they will be retried."))
        else:
            self.stdout.write(self.style.SUCCESS("ROI tick complete."))
