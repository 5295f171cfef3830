from .datatypes import Category, SpendNotice
from .payments import remaining_budget


def build_spend_notice(destination: str, category: Category) -> SpendNotice:
    """Payload handed to the messaging collaborator after a spend."""
    return SpendNotice(
        destination=destination,
        category_name=category.name,
        spent_amount=category.spent,
        remaining_amount=remaining_budget(category),
    )


def format_spend_message(notice: SpendNotice) -> str:
    return (
        f"Budget Update: You spent ${notice.spent_amount:.2f} on {notice.category_name}. "
        f"${notice.remaining_amount:.2f} remaining in this category."
    )
