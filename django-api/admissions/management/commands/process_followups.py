from django.core.management.base import BaseCommand

from admissions.conf import admissions_setting
from admissions.services.factory import build_services


class Command(BaseCommand):
    help = "Run pending follow-up tasks (waitlist promotion, QR rendering, notices)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=None,
            help="Maximum number of tasks to run (default: FOLLOWUP_BATCH_SIZE).",
        )
        parser.add_argument(
            "--retry-failed",
            action="store_true",
            help="Move FAILED tasks back to PENDING before running.",
        )
        parser.add_argument(
            "--sweep",
            action="store_true",
            help="Queue promotion for every event with free seats and a waitlist.",
        )

    def handle(self, *args, **options):
        services = build_services(run_inline=False)
        limit = options["limit"] or admissions_setting("FOLLOWUP_BATCH_SIZE")

        if options["retry_failed"]:
            requeued = services.worker.requeue_failed()
            self.stdout.write(f"Requeued {requeued} failed task(s)")

        if options["sweep"]:
            swept = services.promotions.schedule_sweep()
            self.stdout.write(f"Queued promotion for {len(swept)} event(s)")

        completed, failed = services.worker.run_pending(limit)
        message = f"Processed {completed + failed} task(s): {completed} done, {failed} failed"
        if failed:
            self.stdout.write(self.style.WARNING(message))
        else:
            self.stdout.write(self.style.SUCCESS(message))
