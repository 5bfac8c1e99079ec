import logging

from django.core.management.base import BaseCommand

from flavors.aggregation import refresh_weights
from flavors.models import RATEABLE_MODELS

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "全ての料理・店舗について評価の重みと avg_rating / total_ratings を再計算する"

    def add_arguments(self, parser):
        parser.add_argument(
            "--kind",
            choices=sorted(RATEABLE_MODELS),
            help="dish または restaurant のみを対象にする",
        )

    def handle(self, *args, **options):
        kinds = [options["kind"]] if options.get("kind") else sorted(RATEABLE_MODELS)
        for kind in kinds:
            model = RATEABLE_MODELS[kind]
            count = 0
            for pk in model.objects.order_by("pk").values_list("pk", flat=True).iterator():
                refresh_weights(kind, pk)
                count += 1
            logger.info("refreshed ratings for %s %s rows", count, kind)
            self.stdout.write(self.style.SUCCESS(f"{kind}: {count} refreshed"))
