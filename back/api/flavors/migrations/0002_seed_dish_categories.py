from django.db import migrations


CATEGORIES = [
    ("food", "Food", 10),
    ("delicacy", "Delicacy", 20),
    ("drink", "Drink", 30),
]


def seed_dish_categories(apps, schema_editor):
    DishCategory = apps.get_model("flavors", "DishCategory")
    for code, display_name, sort in CATEGORIES:
        DishCategory.objects.update_or_create(
            code=code,
            defaults={"display_name": display_name, "sort": sort},
        )


def unseed_dish_categories(apps, schema_editor):
    DishCategory = apps.get_model("flavors", "DishCategory")
    DishCategory.objects.filter(code__in=[code for code, _, _ in CATEGORIES]).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("flavors", "0001_initial"),
    ]

    operations = [
        # 冪等（update_or_create）
        migrations.RunPython(seed_dish_categories, unseed_dish_categories),
    ]
