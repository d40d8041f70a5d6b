"""
Management command: verify_audit_trail
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Replays every complaint's history from ``New`` and reports complaints
whose stored status, assignee or department disagree with the trail.

Read-only; exits with status 1 if any divergence is found so it can
be used in scheduled checks.

Usage::

    python manage.py verify_audit_trail
    python manage.py verify_audit_trail --complaint 42 --complaint 43
"""

from django.core.management.base import BaseCommand, CommandError

from complaints.audit import AuditTrailRecorder
from complaints.models import Complaint


class Command(BaseCommand):
    help = "Check that each complaint's state matches a replay of its history."

    def add_arguments(self, parser):
        parser.add_argument(
            "--complaint",
            action="append",
            type=int,
            dest="complaint_ids",
            help="Only check this complaint (repeatable).",
        )

    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n══════════════════════════════════════════"
            "\n  Audit Trail Verification"
            "\n══════════════════════════════════════════\n"
        ))

        queryset = Complaint.objects.all()
        if options["complaint_ids"]:
            queryset = queryset.filter(pk__in=options["complaint_ids"])

        checked = queryset.count()
        divergent = 0
        for complaint, replayed in AuditTrailRecorder().find_divergent(queryset):
            divergent += 1
            self.stdout.write(self.style.ERROR(
                f"  ✘  Complaint #{complaint.pk}: stored "
                f"(status={complaint.status}, assignee={complaint.current_assignee_id}, "
                f"department={complaint.department_id}) but history replays to "
                f"(status={replayed.status}, assignee={replayed.assignee_id}, "
                f"department={replayed.department_id})"
            ))

        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n──────────────────────────────────────────"
        ))
        if divergent:
            raise CommandError(
                f"{divergent} of {checked} complaint(s) diverge from their history."
            )
        self.stdout.write(self.style.SUCCESS(
            f"  Done!  {checked} complaint(s) checked, all consistent.\n"
        ))
