"""
Built-in Categories

Seeded into an empty taxonomy on first load. Every name here is unique
across categories and subcategories, which the store enforces for user
edits as well.
"""

from ledger_core.models.category import (
    NO_PARENT_EXPENSE_ID,
    NO_PARENT_INCOME_ID,
    Category,
    CategoryType,
    Subcategory,
)

# (name, emoji, [(subcategory name, emoji), ...])
INCOME_DEFAULTS = [
    ("Salary", "💼", [("Base Salary", "💰"), ("Overtime", "⏰"), ("Bonus", "🎁")]),
    ("Business Income", "🏢", [("Revenue", "📈"), ("Business Consulting", "🤝"), ("Service Income", "🔧")]),
    ("Passive", "📊", [("Dividends", "💎"), ("Investment Interest", "🏦"), ("Royalties", "👑")]),
    ("Investment", "📈", [("Stocks", "📉"), ("Crypto", "🪙"), ("Real Estate", "🏘️")]),
    ("Government", "🏛️", [("Tax Refund", "🔄"), ("Benefits", "🛡️"), ("Stimulus", "💵")]),
    ("Miscellaneous", "🧾", [("Other Income", "💵"), ("Found Money", "🪙"), ("Cash Back", "💳")]),
    ("Refunds", "↩️", [("Product Returns", "📦"), ("Service Refunds", "🔧"), ("Insurance Claims", "📋")]),
    ("Prizes", "🏆", [("Contests", "🎪"), ("Lottery", "🎲"), ("Awards", "🥇")]),
    ("Donations", "💝", [("Gifts Received", "🎁"), ("Charity Returns", "❤️"), ("Crowdfunding", "👥")]),
]

EXPENSE_DEFAULTS = [
    ("Home", "🏠", [("Rent/Mortgage", "🔑"), ("Property Tax", "📝"), ("Home Repairs", "🔨")]),
    ("Utilities & Bills", "💡", [("Electricity", "⚡"), ("Water", "💧"), ("Internet", "📶")]),
    ("Food", "🍎", [("Groceries", "🛒"), ("Snacks", "🥨"), ("Meal Prep", "🥡")]),
    ("Dining", "🍽️", [("Restaurants", "🍛"), ("Cafes", "☕"), ("Takeout", "🥢")]),
    ("Transport", "🚗", [("Fuel", "⛽"), ("Car Payments", "💵"), ("Rideshare", "🚕")]),
    ("Insurance", "🛡️", [("Auto Insurance", "🚘"), ("Home Insurance", "🏡"), ("Life Insurance", "📃")]),
    ("Health", "🩺", [("Doctor Visits", "👩‍⚕️"), ("Medications", "💊"), ("Therapy", "🧠")]),
    ("Debt", "💳", [("Credit Cards", "💲"), ("Loans", "🏦"), ("Loan Interest", "📈")]),
    ("Fun", "🎭", [("Movies", "🎬"), ("Concerts", "🎵"), ("Games", "🎮")]),
    ("Clothes", "👕", [("Work Attire", "👔"), ("Casual Wear", "👖"), ("Shoes", "👟")]),
    ("Personal", "💇", [("Haircuts", "✂️"), ("Skincare", "🧴"), ("Hygiene", "🧼")]),
    ("Learning", "📚", [("Tuition", "🎓"), ("Books", "📖"), ("Courses", "💻")]),
    ("Kids", "👶", [("Childcare", "🧒"), ("Toys", "🧸"), ("Activities", "🎨")]),
    ("Pets", "🐾", [("Vet Care", "🏥"), ("Pet Food", "🥫"), ("Grooming", "🛁")]),
    ("Gifts", "🎁", [("Presents", "🎀"), ("Charity", "💝"), ("Cards", "💌")]),
    ("Travel", "✈️", [("Flights", "🛫"), ("Hotels", "🏨"), ("Rental Cars", "🚙")]),
    ("Subscriptions", "🔁", [("Streaming", "📺"), ("Software", "🖥️"), ("Memberships", "🎟️")]),
    ("Household", "🧹", [("Cleaning", "🧽"), ("Furniture", "🛋️"), ("Decor", "🏺")]),
    ("Services", "👔", [("Legal", "⚖️"), ("Accounting", "🧮"), ("Professional Consulting", "💼")]),
    ("Supplies", "📎", [("Office", "📌"), ("Crafts", "🖌️"), ("Packaging", "📦")]),
    ("Fitness", "🧘", [("Gym", "🏋️"), ("Fitness Equipment", "🎯"), ("Classes", "🤸")]),
]


def _build(rows: list, category_type: CategoryType, container_id) -> list[Category]:
    return [
        Category(
            name=name,
            emoji=emoji,
            type=category_type,
            parent_id=container_id,
            is_built_in=True,
            subcategories=[
                Subcategory(name=sub_name, emoji=sub_emoji, type=category_type)
                for sub_name, sub_emoji in subcategories
            ],
        )
        for name, emoji, subcategories in rows
    ]


def default_categories() -> list[Category]:
    """Fresh copies of the built-in income and expense categories."""
    return (
        _build(INCOME_DEFAULTS, CategoryType.INCOME, NO_PARENT_INCOME_ID)
        + _build(EXPENSE_DEFAULTS, CategoryType.EXPENSE, NO_PARENT_EXPENSE_ID)
    )
