"""
Account, product catalog and cart services.

Each service takes a Store and raises a ServiceError subclass when a request
cannot be honoured. The status_code on each error is what the HTTP layer
answers with.
"""
import logging

from bson import ObjectId
from werkzeug.security import check_password_hash, generate_password_hash

from store import CART_ITEM, PRODUCT, USER, ConstraintViolation

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = ("team", "imageUrl", "name", "price")


# =============================================================================
# ERRORS
# =============================================================================

class ServiceError(Exception):
    status_code = 500


class ValidationError(ServiceError):
    status_code = 400


class MissingParameter(ValidationError):
    def __init__(self, name):
        super().__init__(f"{name} is required")
        self.name = name


class UnknownTeam(ValidationError):
    def __init__(self, team):
        super().__init__("Invalid team name")
        self.team = team


class InvalidIdentifier(ValidationError):
    def __init__(self, value):
        super().__init__("Invalid item ID")
        self.value = value


class Conflict(ServiceError):
    status_code = 400


class UserAlreadyExists(Conflict):
    def __init__(self, username):
        super().__init__("User with this username already exists")
        self.username = username


class Unauthorized(ServiceError):
    status_code = 401


class InvalidCredentials(Unauthorized):
    def __init__(self):
        super().__init__("Invalid username or password")


class NotFound(ServiceError):
    status_code = 404


class InvalidParameter(ValidationError):
    def __init__(self, name):
        super().__init__(f"{name} must be a string")
        self.name = name


def require(**params):
    """
    Check that every keyword argument is a non-blank string.

    These values end up in Mongo filters, so anything else (a dict such as
    {"$ne": ...} in particular) is rejected before it reaches the store.
    """
    for name, value in params.items():
        if value is None:
            raise MissingParameter(name)
        if not isinstance(value, str):
            raise InvalidParameter(name)
        if not value.strip():
            raise MissingParameter(name)


# =============================================================================
# ACCOUNTS
# =============================================================================

class AccountService:
    def __init__(self, store):
        self.store = store

    def register(self, username, password):
        """
        Create a user account.

        The lookup-then-insert pair is not atomic; the unique index on
        User.username catches the concurrent case.
        """
        require(username=username, password=password)

        if self.store.find_one(USER, {"username": username}):
            raise UserAlreadyExists(username)

        try:
            user_id = self.store.insert(USER, {
                "username": username,
                "passwordHash": generate_password_hash(password),
            })
        except ConstraintViolation:
            raise UserAlreadyExists(username)

        logger.info("Registered user %s", username)
        return user_id

    def login(self, username, password):
        require(username=username, password=password)

        user = self.store.find_one(USER, {"username": username})
        password_hash = user.get("passwordHash") if user else None
        if not password_hash or not check_password_hash(password_hash, password):
            raise InvalidCredentials()
        return user


# =============================================================================
# PRODUCTS AND CART
# =============================================================================

class CatalogService:
    """Team-scoped product listings and per-user carts."""

    def __init__(self, store):
        self.store = store

    def list_products(self, team):
        require(Team=team)
        products = self.store.find_many(PRODUCT, {"team": team})
        # An unknown team and a team with no products look the same here.
        if not products:
            raise NotFound("No products found for this team")
        return products

    def add_product(self, fields):
        product = {field: fields.get(field) for field in PRODUCT_FIELDS}
        return self.store.insert(PRODUCT, product)

    def add_to_cart(self, username, fields):
        """Insert one cart row per call; repeated adds are not merged."""
        require(Username=username)
        item = {field: fields.get(field) for field in PRODUCT_FIELDS}
        item["username"] = username
        return self.store.insert(CART_ITEM, item)

    def get_cart(self, username):
        require(Username=username)
        items = self.store.find_many(CART_ITEM, {"username": username})
        if not items:
            raise NotFound("No items found in cart")
        return items

    def remove_from_cart(self, item_id):
        """
        Delete a cart row by id and return how many rows went away.

        An id that matches nothing is not an error: the caller gets 0 back
        and the HTTP layer still answers 200.
        """
        require(productId=item_id)
        if not ObjectId.is_valid(item_id):
            raise InvalidIdentifier(item_id)

        deleted = self.store.delete_one(CART_ITEM, {"_id": ObjectId(item_id)})
        if deleted:
            logger.info("Removed cart item %s", item_id)
        else:
            logger.info("Cart item %s not found, nothing removed", item_id)
        return deleted
