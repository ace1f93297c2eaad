from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from apps.biweeks.calendar import BillboardCalendar
from apps.companies.models import Company
from shared.domain.exceptions import DomainError


class Command(BaseCommand):
    help = "Gera as 26 bi-semanas do ano para uma ou todas as empresas"

    def add_arguments(self, parser):
        parser.add_argument(
            "years", nargs="*", type=int, help="Anos a gerar (padrão: ano corrente)"
        )
        parser.add_argument("--company", type=int, help="Gerar apenas para esta empresa")

    def handle(self, *args, **options):
        years = options["years"] or [timezone.now().year]
        company_id = options.get("company")

        companies = Company.objects.all()
        if company_id:
            companies = companies.filter(pk=company_id)
            if not companies.exists():
                raise CommandError(f"Company {company_id} not found")

        for company in companies:
            for year in years:
                try:
                    result = BillboardCalendar.generate_slots(company.pk, year)
                except DomainError as exc:
                    raise CommandError(str(exc)) from exc

                self.stdout.write(
                    self.style.SUCCESS(
                        f"{company.name} {year}: {result.created} criadas, "
                        f"{result.skipped} já existentes"
                    )
                )
