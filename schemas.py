import re
from datetime import date
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from errors import FieldError, ValidationError

BARCODE_REGEX = r'^[A-Za-z0-9]{1,64}$'
MAX_QUANTITY = 2**31 - 1
PASSWORD_SPECIALS = r'[\W_]'


def _blank_to_none(v):
    if v is None:
        return None
    if isinstance(v, str) and v.strip() == "":
        return None
    return v


def _check_date(v):
    if v is None:
        return ""
    v = str(v)
    try:
        date.fromisoformat(v.strip())
    except ValueError:
        raise ValueError("Expiration date must be a date in YYYY-MM-DD format")
    return v.strip()


def _check_quantity(v):
    if isinstance(v, bool):
        raise ValueError("Quantity must be a whole number")
    if isinstance(v, str):
        v = v.strip()
        if not re.fullmatch(r'-?\d+', v):
            raise ValueError("Quantity must be a whole number")
        v = int(v)
    if not isinstance(v, int):
        raise ValueError("Quantity must be a whole number")
    if v < 0:
        raise ValueError("Quantity cannot be negative")
    if v > MAX_QUANTITY:
        raise ValueError("Quantity is too large")
    return v


def parse_form(model, data):
    """Build ``model`` from raw form data, collecting every field error."""
    try:
        return model.model_validate(data, context={"raw": data})
    except PydanticValidationError as exc:
        messages = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or None
            message = err["msg"]
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            messages.append(FieldError(field, message))
        raise ValidationError(messages) from None


# ------------------------------------------------------------
# Forms
# ------------------------------------------------------------

class RegisterForm(BaseModel):
    username: str = Field(default="", validate_default=True)
    email: EmailStr = Field(default="", validate_default=True)
    password: str = Field(default="", validate_default=True)
    password_repeat: str = Field(default="", validate_default=True)

    @field_validator('username')
    def username_length(cls, v):
        v = v.strip()
        if not 3 <= len(v) <= 30:
            raise ValueError("Username must be between 3 and 30 characters long")
        return v

    @field_validator('email', mode='before')
    def email_lowercase(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('password')
    def password_must_be_strong(cls, v):
        if len(v) < 8 or not re.search(r'\d', v) or not re.search(r'[A-Z]', v) or not re.search(r'[a-z]', v) or not re.search(PASSWORD_SPECIALS, v):
            raise ValueError(
                "Password must be at least 8 characters long and contain at least one uppercase letter, "
                "one lowercase letter, one number and one special character"
            )
        return v

    @field_validator('password_repeat')
    def passwords_match(cls, v, info: ValidationInfo):
        # info.data has no password when the password itself failed validation
        raw = (info.context or {}).get("raw", {})
        password = info.data.get("password", raw.get("password", ""))
        if v != password:
            raise ValueError("Passwords do not match")
        return v


class LoginForm(BaseModel):
    username: str = Field(default="", validate_default=True)
    password: str = Field(default="", validate_default=True)

    @field_validator('username')
    def username_required(cls, v):
        if not v.strip():
            raise ValueError("Username is required")
        return v.strip()

    @field_validator('password')
    def password_required(cls, v):
        if not v:
            raise ValueError("Password is required")
        return v


class AddProductForm(BaseModel):
    barcode: Optional[str] = None
    quantity: int = 0
    expiration_date: str = ""

    @field_validator('barcode', mode='before')
    def barcode_must_be_alphanumeric(cls, v):
        v = _blank_to_none(v)
        if v is None:
            return None
        v = str(v).strip()
        if not re.match(BARCODE_REGEX, v):
            raise ValueError("Barcode must contain only letters and digits")
        return v

    @field_validator('quantity', mode='before')
    def quantity_defaults_to_zero(cls, v):
        v = _blank_to_none(v)
        if v is None:
            return 0
        return _check_quantity(v)

    @field_validator('expiration_date', mode='before')
    def expiration_date_is_iso(cls, v):
        return _check_date(_blank_to_none(v))


class UpdateItemForm(BaseModel):
    product_name: str = Field(default="", validate_default=True)
    quantity: int = Field(default=None, validate_default=True)
    expiration_date: str = Field(default=None, validate_default=True)
    image_url: Optional[str] = None

    @field_validator('product_name')
    def product_name_required(cls, v):
        if not v.strip():
            raise ValueError("Product name is required")
        return v.strip()

    @field_validator('quantity', mode='before')
    def quantity_must_be_integer(cls, v):
        if v is None:
            raise ValueError("Quantity is required")
        return _check_quantity(v)

    @field_validator('expiration_date', mode='before')
    def expiration_date_is_iso(cls, v):
        if v is None:
            raise ValueError("Expiration date is required")
        return _check_date(_blank_to_none(v))

    @field_validator('image_url', mode='before')
    def blank_image_is_none(cls, v):
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v
