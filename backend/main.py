import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

import auth
import models
from auth_service import UserService
from composer import OrderComposer
from config import Settings, setup_logging
from database import (
    create_store_engine,
    get_db,
    init_restaurant_config,
    make_session_factory,
    wait_for_db,
)
from errors import (
    DependencyNotFound,
    NotFound,
    RestaurantError,
    StoreFailure,
    StoreTimeout,
    ValidationFailed,
)
from foods import FoodService
from health_monitor import collect_health
from invoices import InvoiceService
from menus import MenuService
from pagination import list_page
from pipeline import OrderViewPipeline
from redis_client import RedisClient
from schemas import (
    AuthResponse,
    ComposedOrderResponse,
    FoodCreate,
    FoodPage,
    FoodResponse,
    FoodUpdate,
    InvoiceCreate,
    InvoicePage,
    InvoiceResponse,
    InvoiceUpdate,
    InvoiceView,
    MenuCreate,
    MenuPage,
    MenuResponse,
    MenuUpdate,
    OrderCreate,
    OrderItemPack,
    OrderItemPage,
    OrderItemResponse,
    OrderItemUpdate,
    OrderPage,
    OrderResponse,
    OrderUpdate,
    OrderView,
    TokenRefresh,
    UserCreate,
    UserLogin,
    UserPage,
    UserResponse,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    DependencyNotFound: status.HTTP_404_NOT_FOUND,
    NotFound: status.HTTP_404_NOT_FOUND,
    ValidationFailed: status.HTTP_400_BAD_REQUEST,
    StoreTimeout: status.HTTP_504_GATEWAY_TIMEOUT,
    StoreFailure: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

LOGIN_RATE_LIMIT = 10
LOGIN_RATE_WINDOW = 60


def _parse_int(value: Optional[str]) -> Optional[int]:
    # unparsable paging values fall back to the defaults
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def get_cache(request: Request) -> Optional[RedisClient]:
    return request.app.state.cache


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
):
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="No authorisation header provided")

    token = authorization.replace("Bearer ", "")
    payload = auth.verify_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid token")

    uid = payload.get("uid")
    if not uid or "email" not in payload:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        return UserService(db).get_user(uid)
    except NotFound:
        raise HTTPException(status_code=401, detail="User not found")


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    cache: Optional[RedisClient] = None,
) -> FastAPI:
    settings = settings or Settings()
    if engine is None:
        engine = create_store_engine(settings.database_url, timeout=settings.store_timeout)
    if cache is None and settings.cache_enabled:
        cache = RedisClient(settings.redis_host, settings.redis_port, ttl=settings.order_view_ttl)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if wait_for_db(engine):
            models.Base.metadata.create_all(bind=engine)
            init_restaurant_config(app.state.session_factory, settings.initial_tables)
            logger.info("Database initialised")
        else:
            logger.error("Database not ready at startup")
        yield

    app = FastAPI(title="Restaurant API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.cache = cache

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RestaurantError)
    async def restaurant_error_handler(request: Request, exc: RestaurantError):
        code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
        return JSONResponse(status_code=code, content={"error": exc.message})

    @app.get("/health")
    def health_check():
        return collect_health(engine, app.state.cache)

    # ---------- users ----------

    @app.post("/users/signup", response_model=AuthResponse)
    def signup(user: UserCreate, db: Session = Depends(get_db)):
        return UserService(db).signup(user)

    @app.post("/users/login", response_model=AuthResponse)
    def login(credentials: UserLogin, request: Request, db: Session = Depends(get_db),
              cache: Optional[RedisClient] = Depends(get_cache)):
        if cache is not None:
            client_host = request.client.host if request.client else "unknown"
            allowed, _ = cache.check_rate_limit(f"rate_limit:login:{client_host}", LOGIN_RATE_LIMIT, LOGIN_RATE_WINDOW)
            if not allowed:
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail=f"Rate limit exceeded. Try again in {LOGIN_RATE_WINDOW} seconds."
                )
        return UserService(db).login(credentials)

    @app.post("/users/refresh", response_model=AuthResponse)
    def refresh_tokens(body: TokenRefresh, db: Session = Depends(get_db)):
        return UserService(db).refresh(body.refresh_token)

    @app.get("/users", response_model=UserPage)
    def get_users(page: Optional[str] = None, recordPerPage: Optional[str] = None,
                  db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        result = list_page(db, models.User, _parse_int(page), _parse_int(recordPerPage))
        return {"total_count": result.total_count, "users": result.items}

    @app.get("/users/{user_id}", response_model=UserResponse)
    def get_user(user_id: str, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        return UserService(db).get_user(user_id)

    # ---------- menus ----------

    @app.get("/menus", response_model=MenuPage)
    def get_menus(page: Optional[str] = None, recordPerPage: Optional[str] = None,
                  db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        result = list_page(db, models.Menu, _parse_int(page), _parse_int(recordPerPage))
        return {"total_count": result.total_count, "menus": result.items}

    @app.get("/menus/{menu_id}", response_model=MenuResponse)
    def get_menu(menu_id: str, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        return MenuService(db).get_menu(menu_id)

    @app.post("/menus", response_model=MenuResponse)
    def create_menu(menu: MenuCreate, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        return MenuService(db).create_menu(menu)

    @app.patch("/menus/{menu_id}", response_model=MenuResponse)
    def update_menu(menu_id: str, menu: MenuUpdate, db: Session = Depends(get_db),
                    current_user=Depends(get_current_user)):
        return MenuService(db).update_menu(menu_id, menu)

    # ---------- foods ----------

    @app.get("/foods", response_model=FoodPage)
    def get_foods(page: Optional[str] = None, recordPerPage: Optional[str] = None,
                  db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        result = list_page(db, models.Food, _parse_int(page), _parse_int(recordPerPage))
        return {"total_count": result.total_count, "food_items": result.items}

    @app.get("/foods/{food_id}", response_model=FoodResponse)
    def get_food(food_id: str, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        return FoodService(db).get_food(food_id)

    @app.post("/foods", response_model=FoodResponse)
    def create_food(food: FoodCreate, db: Session = Depends(get_db),
                    cache: Optional[RedisClient] = Depends(get_cache), current_user=Depends(get_current_user)):
        return FoodService(db, cache).create_food(food)

    @app.patch("/foods/{food_id}", response_model=FoodResponse)
    def update_food(food_id: str, food: FoodUpdate, db: Session = Depends(get_db),
                    cache: Optional[RedisClient] = Depends(get_cache), current_user=Depends(get_current_user)):
        return FoodService(db, cache).update_food(food_id, food)

    # ---------- orders ----------

    @app.get("/orders", response_model=OrderPage)
    def get_orders(page: Optional[str] = None, recordPerPage: Optional[str] = None,
                   db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        result = list_page(db, models.Order, _parse_int(page), _parse_int(recordPerPage))
        return {"total_count": result.total_count, "orders": result.items}

    @app.post("/orders", response_model=OrderResponse)
    def create_order(order: OrderCreate, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        return OrderComposer(db).create_order(order.table_id, order.order_date)

    @app.get("/orders/{order_id}", response_model=OrderResponse)
    def get_order(order_id: str, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        return OrderComposer(db).get_order(order_id)

    @app.patch("/orders/{order_id}", response_model=OrderResponse)
    def update_order(order_id: str, order: OrderUpdate, db: Session = Depends(get_db),
                     cache: Optional[RedisClient] = Depends(get_cache), current_user=Depends(get_current_user)):
        return OrderComposer(db, cache).update_order(order_id, order)

    @app.get("/orders/{order_id}/view", response_model=OrderView)
    def get_order_view(order_id: str, db: Session = Depends(get_db),
                       cache: Optional[RedisClient] = Depends(get_cache), current_user=Depends(get_current_user)):
        return OrderViewPipeline(db, cache).reconstruct_order_view(order_id)

    # ---------- order items ----------

    @app.get("/orderitems", response_model=OrderItemPage)
    def get_order_items(page: Optional[str] = None, recordPerPage: Optional[str] = None,
                        db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        result = list_page(db, models.OrderItem, _parse_int(page), _parse_int(recordPerPage))
        return {"total_count": result.total_count, "order_items": result.items}

    @app.post("/orderitems", response_model=ComposedOrderResponse)
    def create_order_items(pack: OrderItemPack, db: Session = Depends(get_db),
                           cache: Optional[RedisClient] = Depends(get_cache), current_user=Depends(get_current_user)):
        order_id, item_ids = OrderComposer(db, cache).compose_order_with_items(pack.table_id, pack.order_items)
        return {"order_id": order_id, "order_item_ids": item_ids}

    @app.get("/orderitems/{order_item_id}", response_model=OrderItemResponse)
    def get_order_item(order_item_id: str, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        return OrderComposer(db).get_order_item(order_item_id)

    @app.patch("/orderitems/{order_item_id}", response_model=OrderItemResponse)
    def update_order_item(order_item_id: str, item: OrderItemUpdate, db: Session = Depends(get_db),
                          cache: Optional[RedisClient] = Depends(get_cache), current_user=Depends(get_current_user)):
        return OrderComposer(db, cache).update_order_item(order_item_id, item)

    @app.get("/orderItems-order/{order_id}", response_model=List[OrderView])
    def get_order_items_by_order(order_id: str, db: Session = Depends(get_db),
                                 current_user=Depends(get_current_user)):
        return OrderViewPipeline(db).run(order_id)

    # ---------- invoices ----------

    @app.get("/invoices", response_model=InvoicePage)
    def get_invoices(page: Optional[str] = None, recordPerPage: Optional[str] = None,
                     db: Session = Depends(get_db), current_user=Depends(get_current_user)):
        result = list_page(db, models.Invoice, _parse_int(page), _parse_int(recordPerPage))
        return {"total_count": result.total_count, "invoices": result.items}

    @app.post("/invoices", response_model=InvoiceResponse)
    def create_invoice(invoice: InvoiceCreate, db: Session = Depends(get_db),
                       current_user=Depends(get_current_user)):
        return InvoiceService(db).create_invoice(invoice)

    @app.get("/invoices/{invoice_id}", response_model=InvoiceView)
    def get_invoice(invoice_id: str, db: Session = Depends(get_db),
                    cache: Optional[RedisClient] = Depends(get_cache), current_user=Depends(get_current_user)):
        return InvoiceService(db, cache).assemble_invoice_view(invoice_id)

    @app.patch("/invoices/{invoice_id}", response_model=InvoiceResponse)
    def update_invoice(invoice_id: str, invoice: InvoiceUpdate, db: Session = Depends(get_db),
                       current_user=Depends(get_current_user)):
        return InvoiceService(db).update_invoice(invoice_id, invoice)

    return app


if __name__ == "__main__":
    app_settings = Settings()
    setup_logging(app_settings.log_level)
    uvicorn.run(create_app(app_settings), host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
