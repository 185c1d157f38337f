from django.core.management.base import BaseCommand, CommandError

from roi_backend.apps.investments.services.audit import audit_ledger


class Command(BaseCommand):
    help = "Compare each investment's lifetime ROI with its cycle ROI ledger entries."

    def add_arguments(self, parser):
        parser.add_argument(
            "--only-mismatches",
            action="store_true",
            help="Print only investments whose totals disagree.",
        )

    def handle(self, *args, **options):
        mismatches = 0
        for audit in audit_ledger():
            if audit.is_consistent and options["only_mismatches"]:
                continue
            if not audit.is_consistent:
                mismatches += 1
            line = (
                f"{audit.investment_id}: lifetime={audit.lifetime_accumulated} "
                f"ledger={audit.ledger_total} diff={audit.difference}"
            )
            style = self.style.SUCCESS if audit.is_consistent else self.style.ERROR
            self.stdout.write(style(line))

        if mismatches:
            raise CommandError(f"{mismatches} investments disagree with the ledger.")
        self.stdout.write(self.style.SUCCESS("Ledger consistent."))
