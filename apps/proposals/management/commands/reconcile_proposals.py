from django.core.management.base import BaseCommand

from apps.proposals.reconciliation import ReconciliationJob


class Command(BaseCommand):
    help = "Reconcilia propostas internas com as reservas geradas a partir delas"

    def handle(self, *args, **options):
        job = ReconciliationJob()
        reports = job.run()

        drifted = [report for report in reports if report.had_problem]

        self.stdout.write(self.style.SUCCESS(f"\nPropostas verificadas: {len(reports)}"))
        self.stdout.write(f"Propostas com problemas: {len(drifted)}")

        for report in drifted:
            self.stdout.write(
                f"  {report.proposal_code or report.proposal_id}: "
                f"{report.created} criadas, {report.corrected} corrigidas, "
                f"{report.orphans_removed} removidas"
            )
            for problem in report.problems:
                self.stdout.write(self.style.WARNING(f"    - {problem}"))

        self.stdout.write(f"Reservas órfãs removidas: {job.orphan_bookings_removed}")
