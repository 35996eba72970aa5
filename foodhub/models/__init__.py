from foodhub.models.user import User
from foodhub.models.restaurant import Restaurant
from foodhub.models.employee import Employee
from foodhub.models.table import DiningTable
from foodhub.models.menu_item import MenuItem
from foodhub.models.order import Order
from foodhub.models.order_item import OrderItem
from foodhub.models.payment import Payment
from foodhub.models.inventory import Inventory, InventoryLog
