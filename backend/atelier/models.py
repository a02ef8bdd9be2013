"""
Import de tous les modèles de table pour enregistrer leurs métadonnées SQLModel.
"""
from atelier.inputs.models import Input, InputVariant, TemplateRecipe  # noqa: F401
from atelier.orders.models import Order, OrderItem, OrderSequence, OrderStatusHistory  # noqa: F401
from atelier.payments.models import PaymentEvent  # noqa: F401
from atelier.product_variants.models import ProductVariant  # noqa: F401
from atelier.products.models import Color, Product, Size  # noqa: F401
from atelier.stock_movements.models import InputMovement, VariantMovement  # noqa: F401
from atelier.store_settings.models import Setting  # noqa: F401
from atelier.users.models import User  # noqa: F401
