"""
Model registry.

Import ``Base`` from here (not from ``base_class``) whenever the full metadata
is needed, e.g. for ``create_all``.
"""

from powernaija.db.base_class import Base  # noqa: F401
from powernaija.models.user import User  # noqa: F401
from powernaija.models.wallet import Wallet  # noqa: F401
from powernaija.models.company import Company  # noqa: F401
from powernaija.models.energy_token import EnergyToken  # noqa: F401
from powernaija.models.usage_log import UsageLog  # noqa: F401
from powernaija.models.usage_limit import UsageLimit  # noqa: F401
from powernaija.models.carbon_credit import CarbonCredit  # noqa: F401
from powernaija.models.transaction import Transaction  # noqa: F401
from powernaija.models.notification import Notification  # noqa: F401
from powernaija.models.chat import ChatMessage, ChatSession  # noqa: F401
