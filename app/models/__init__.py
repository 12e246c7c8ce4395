from app.models.user import User
from app.models.lounge import Lounge
from app.models.food import Food
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.payment import Payment
from app.models.contract import Contract
from app.models.commission import Commission
from app.models.notifications import Notification

# add ALL models here
