import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Form, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.sessions import SessionMiddleware

import credentials
import pantry
from auth import current_username, login_session, logout_session, require_user
from config import get_settings
from database import build_engine, get_db, init_db
from errors import FieldError, NotAuthenticated, NotFound, PantryError, StorageError, ValidationError
from logging_config import setup_logging
from lookup import ProductLookupClient
from schemas import AddProductForm, LoginForm, RegisterForm, parse_form

logger = logging.getLogger(__name__)

router = APIRouter()


def _redirect(url):
    return RedirectResponse(url, status_code=303)


def _form_data(**fields):
    return {name: value for name, value in fields.items() if value is not None}


# ids beyond a 64-bit INTEGER can never match a row
MAX_ITEM_ID = 2**63 - 1


def _item_id(raw):
    if not (raw.isascii() and raw.isdigit()) or int(raw) > MAX_ITEM_ID:
        raise NotFound([FieldError("id", "Item not found")])
    return int(raw)


# ------------------------------------------------------------
# Dependency
# ------------------------------------------------------------

def get_lookup_client(request: Request):
    return request.app.state.lookup_client


# ------------------------------------------------------------
# Error handlers
# ------------------------------------------------------------

async def pantry_error_handler(request: Request, exc: PantryError):
    if isinstance(exc, StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"errors": [{"field": None, "message": StorageError.PUBLIC_MESSAGE}]})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def not_authenticated_handler(request: Request, exc: NotAuthenticated):
    return _redirect("/login")


async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"][1:]) or None
        messages.append(FieldError(field, err["msg"]))
    return JSONResponse(status_code=400, content=ValidationError(messages).to_dict())


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"errors": [{"field": None, "message": StorageError.PUBLIC_MESSAGE}]})


# ------------------------------------------------------------
# User Registration and Login
# ------------------------------------------------------------

@router.get("/")
@router.get("/register")
def register_page():
    return {"form": "register", "fields": ["username", "email", "password", "password_repeat"]}


@router.post("/")
@router.post("/register")
def register(
    username: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    password_repeat: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    form = parse_form(
        RegisterForm,
        _form_data(username=username, email=email, password=password, password_repeat=password_repeat),
    )
    credentials.register(db, form.username, form.email, form.password)
    return _redirect("/login")


@router.get("/login")
def login_page():
    return {"form": "login", "fields": ["username", "password"]}


@router.post("/login")
def login(
    request: Request,
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    form = parse_form(LoginForm, _form_data(username=username, password=password))
    user = credentials.authenticate(db, form.username, form.password)
    login_session(request, user)
    logger.info("User %s logged in", user.username)
    return _redirect("/dashboard")


@router.post("/logout")
def logout(request: Request):
    username = current_username(request)
    logout_session(request)
    if username:
        logger.info("User %s logged out", username)
    return _redirect("/login")


# ------------------------------------------------------------
# Pantry (session-protected)
# ------------------------------------------------------------

@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db), username: str = Depends(require_user)):
    items = pantry.list_items(db, username)
    return {"user": {"username": username}, "items": [item.to_dict() for item in items]}


@router.get("/product_page")
def product_page(item_id: str = Query(..., alias="id"), db: Session = Depends(get_db)):
    return pantry.get_item(db, _item_id(item_id)).to_dict()


@router.get("/add_product")
def add_product_page():
    return {"form": "add_product", "fields": ["barcode", "quantity", "expiration_date"]}


@router.post("/add_product")
def add_product(
    barcode: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    expiration_date: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    client: ProductLookupClient = Depends(get_lookup_client),
    username: str = Depends(require_user),
):
    form = parse_form(AddProductForm, _form_data(barcode=barcode, quantity=quantity, expiration_date=expiration_date))
    pantry.add_product(db, client, username, form.barcode, form.expiration_date, form.quantity)
    return _redirect("/dashboard")


@router.post("/update/{item_id}")
def update_item(
    item_id: str,
    product_name: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    expiration_date: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    username: str = Depends(require_user),
):
    pantry.update_item(db, _item_id(item_id), product_name, quantity, expiration_date, image_url, owner=username)
    return _redirect("/dashboard")


@router.post("/delete_product/{item_id}")
def delete_item(item_id: str, db: Session = Depends(get_db), username: str = Depends(require_user)):
    try:
        pantry.delete_item(db, _item_id(item_id), owner=username)
    except NotFound:
        # a malformed id matches no row, so there is nothing to delete
        pass
    return _redirect("/dashboard")


# ------------------------------------------------------------
# Application
# ------------------------------------------------------------

def create_app(settings=None, engine=None, lookup_client=None):
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="Markit pantry")
    app.state.settings = settings
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        max_age=settings.session_expiration_minutes * 60,
    )

    init_db(engine or build_engine(settings.database_url))
    app.state.lookup_client = lookup_client or ProductLookupClient(
        settings.lookup_base_url, timeout=settings.lookup_timeout
    )

    app.add_exception_handler(PantryError, pantry_error_handler)
    app.add_exception_handler(NotAuthenticated, not_authenticated_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)

    app.include_router(router)
    return app


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(create_app(), host="127.0.0.1", port=8082)
