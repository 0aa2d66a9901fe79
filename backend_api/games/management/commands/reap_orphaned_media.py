from django.core.management.base import BaseCommand

from games.models import OrphanedMedia
from games.services import reap_orphaned_media


class Command(BaseCommand):
    help = "Remove media folders left behind by deleted games."

    def handle(self, *args, **options):
        # PUBLIC_INTERFACE
        # This command is idempotent and safe to run multiple times.
        pending = OrphanedMedia.objects.filter(resolved_at__isnull=True).count()
        if pending == 0:
            self.stdout.write(self.style.WARNING("No orphaned media. No action taken."))
            return

        resolved, failed = reap_orphaned_media()
        self.stdout.write(self.style.SUCCESS(f"Removed {resolved} orphaned media folder(s)."))
        if failed:
            self.stdout.write(self.style.ERROR(f"{failed} folder(s) could not be removed."))
