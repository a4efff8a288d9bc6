# models.py
# Records reference each other only through their public *_id strings.
# There are no ForeignKey constraints: references are checked by the
# application before a dependent write (see references.py).
from sqlalchemy import Column, DateTime, Integer, Numeric, String
from database import Base


ID_LENGTH = 32


class Menu(Base):
    __tablename__ = "menus"

    id = Column(Integer, primary_key=True)
    menu_id = Column(String(ID_LENGTH), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    category = Column(String(100), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class Food(Base):
    __tablename__ = "foods"

    id = Column(Integer, primary_key=True)
    food_id = Column(String(ID_LENGTH), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    food_image = Column(String(255), nullable=False)
    menu_id = Column(String(ID_LENGTH), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class Table(Base):
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True)
    table_id = Column(String(ID_LENGTH), unique=True, index=True, nullable=False)
    table_number = Column(Integer, nullable=False)
    number_of_guests = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_id = Column(String(ID_LENGTH), unique=True, index=True, nullable=False)
    order_date = Column(DateTime(timezone=True), nullable=False)
    table_id = Column(String(ID_LENGTH), index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_item_id = Column(String(ID_LENGTH), unique=True, index=True, nullable=False)
    order_id = Column(String(ID_LENGTH), index=True, nullable=False)
    food_id = Column(String(ID_LENGTH), index=True, nullable=False)
    quantity = Column(Integer, nullable=False)
    # Price at the time the item was ordered, not a live reference to Food.price
    unit_price = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(String(ID_LENGTH), unique=True, index=True, nullable=False)
    order_id = Column(String(ID_LENGTH), index=True, nullable=False)
    payment_method = Column(String(20), nullable=True)
    payment_status = Column(String(20), nullable=False, default="PENDING")
    payment_due_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(ID_LENGTH), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    # Uniqueness is a pre-check in auth_service, not a constraint
    email = Column(String(255), index=True, nullable=False)
    phone = Column(String(20), index=True, nullable=False)
    password = Column(String(255), nullable=False)
    token = Column(String, nullable=True)
    refresh_token = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
