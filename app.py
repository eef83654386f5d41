import datetime
import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_pymongo import PyMongo

from services import AccountService, CatalogService, ServiceError
from store import Store, StorageError
from teams import SEED_TEAMS, TeamService

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

DEFAULT_MONGO_URI = "mongodb://localhost:27017/IPL"
DEFAULT_DBNAME = "IPL"
DEFAULT_PORT = 3001

# Wire name -> stored field name
PRODUCT_WIRE_FIELDS = (
    ("Team", "team"),
    ("P_url", "imageUrl"),
    ("P_name", "name"),
    ("P_price", "price"),
)

# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def product_from_wire(data):
    """Map a request body using P_* names onto stored product fields"""
    return {field: data.get(key) for key, field in PRODUCT_WIRE_FIELDS}


def product_to_wire(doc):
    """Convert a Product or CartItem document to the names clients post with"""
    data = {"_id": str(doc["_id"])}
    if "username" in doc:
        data["Username"] = doc["username"]
    for key, field in PRODUCT_WIRE_FIELDS:
        data[key] = doc.get(field)
    return data


def team_to_wire(doc):
    return {
        "team": doc.get("team", doc.get("name")),
        "color": doc["color"],
        "logo": doc["logoUrl"],
    }


def request_data():
    """JSON body as a dict; anything else (arrays, scalars, bad JSON) is {}"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def service_failure(error):
    return jsonify({"error": str(error)}), error.status_code


def storage_failure(action, error):
    logger.error("Storage error while %s: %s", action, error)
    return jsonify({"error": f"Error {action}: {error}"}), 500


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(config=None, db=None):
    """
    Build the Flask app.

    config overrides app.config after the environment is read. Passing db
    uses that database handle instead of connecting through Flask-PyMongo.
    """
    app = Flask(__name__)

    app.config["MONGO_URI"] = os.getenv("MONGO_URI", DEFAULT_MONGO_URI)
    app.config["MONGO_DBNAME"] = os.getenv("MONGO_DBNAME", DEFAULT_DBNAME)
    app.config["CORS_ORIGINS"] = os.getenv("CORS_ORIGINS", "*")
    app.config["SEED_ON_STARTUP"] = True
    if config:
        app.config.update(config)

    origins = app.config["CORS_ORIGINS"]
    if origins != "*":
        origins = [origin.strip() for origin in origins.split(",") if origin.strip()]
    CORS(app, origins=origins, methods=["GET", "POST", "PUT", "DELETE"], allow_headers=["Content-Type"])

    if db is None:
        mongo = PyMongo(app)
        db = mongo.db if mongo.db is not None else mongo.cx[app.config["MONGO_DBNAME"]]

    store = Store(db)
    accounts = AccountService(store)
    teams = TeamService(store, SEED_TEAMS)
    catalog = CatalogService(store)

    app.extensions["store"] = store
    app.extensions["accounts"] = accounts
    app.extensions["teams"] = teams
    app.extensions["catalog"] = catalog

    if app.config["SEED_ON_STARTUP"]:
        store.ensure_indexes()
        try:
            teams.seed_catalog()
        except StorageError as e:
            logger.error("Team seeding failed: %s", e)

    @app.before_request
    def log_request_info():
        logger.debug("%s %s", request.method, request.path)

    # =========================================================================
    # AUTHENTICATION ENDPOINTS
    # =========================================================================

    @app.route("/user_name", methods=["POST"])
    def signup():
        """
        Create a new user account
        Required fields: form (username), password
        """
        data = request_data()
        try:
            accounts.register(data.get("form"), data.get("password"))
            return jsonify({"message": "User saved successfully"}), 201
        except ServiceError as e:
            return service_failure(e)
        except StorageError as e:
            return storage_failure("saving user", e)

    @app.route("/login", methods=["POST"])
    def login():
        """
        Check a username/password pair. No token is issued.
        Required fields: form (username), password
        """
        data = request_data()
        try:
            user = accounts.login(data.get("form"), data.get("password"))
            return jsonify({"message": "Login successful", "username": user["username"]}), 200
        except ServiceError as e:
            return service_failure(e)
        except StorageError as e:
            return storage_failure("logging in", e)

    # =========================================================================
    # TEAM ENDPOINTS
    # =========================================================================

    @app.route("/teams", methods=["GET"])
    def list_teams():
        """Get the reference teams users can pick from"""
        try:
            return jsonify([team_to_wire(t) for t in teams.list_teams()]), 200
        except StorageError as e:
            return storage_failure("fetching teams", e)

    @app.route("/teamassigned", methods=["GET", "POST"])
    def team_assigned():
        """
        GET: Get the team assigned to ?username=
        POST: Assign (or reassign) a team to a user
        """
        try:
            if request.method == "GET":
                assignment = teams.get_assignment(request.args.get("username"))
                return jsonify(team_to_wire(assignment)), 200

            data = request_data()
            teams.assign_team(data.get("username"), data.get("team"))
            return jsonify({"message": "Team assigned successfully"}), 201

        except ServiceError as e:
            return service_failure(e)
        except StorageError as e:
            action = "fetching team" if request.method == "GET" else "assigning team"
            return storage_failure(action, e)

    # =========================================================================
    # PRODUCT ENDPOINTS
    # =========================================================================

    @app.route("/product_listing", methods=["GET", "POST"])
    def product_listing():
        """
        GET: Get all products for ?Team=
        POST: Create a product (no validation; restrict access at deployment)
        """
        try:
            if request.method == "GET":
                products = catalog.list_products(request.args.get("Team"))
                return jsonify([product_to_wire(p) for p in products]), 200

            product_id = catalog.add_product(product_from_wire(request_data()))
            return jsonify({"message": "Product added successfully", "id": product_id}), 201

        except ServiceError as e:
            return service_failure(e)
        except StorageError as e:
            action = "fetching products" if request.method == "GET" else "adding product"
            return storage_failure(action, e)

    # =========================================================================
    # CART ENDPOINTS
    # =========================================================================

    @app.route("/add_to_cart", methods=["GET", "POST", "DELETE"])
    def cart():
        """
        GET: Get cart items for ?Username=
        POST: Add a product to a user's cart
        DELETE: Remove the cart item ?productId=
        """
        try:
            if request.method == "GET":
                items = catalog.get_cart(request.args.get("Username"))
                return jsonify([product_to_wire(i) for i in items]), 200

            if request.method == "POST":
                data = request_data()
                item_id = catalog.add_to_cart(data.get("Username"), product_from_wire(data))
                return jsonify({"message": "Item added to cart successfully", "id": item_id}), 201

            catalog.remove_from_cart(request.args.get("productId"))
            return jsonify({"message": "Cart item removed successfully"}), 200

        except ServiceError as e:
            return service_failure(e)
        except StorageError as e:
            action = {
                "GET": "fetching cart",
                "POST": "adding to cart",
                "DELETE": "removing from cart",
            }[request.method]
            return storage_failure(action, e)

    # =========================================================================
    # SEED DATA ENDPOINT
    # =========================================================================

    @app.route("/seed", methods=["POST"])
    def seed_data():
        """Re-run the reference team seeding (idempotent)"""
        try:
            count = teams.seed_catalog()
            return jsonify({"message": "Teams seeded successfully", "teams_seeded": count}), 201
        except StorageError as e:
            return storage_failure("seeding teams", e)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_server_error(error):
        return jsonify({"error": "Internal server error"}), 500

    # =========================================================================
    # HEALTH CHECK ENDPOINT
    # =========================================================================

    @app.route("/health", methods=["GET"])
    def health_check():
        """API health check endpoint"""
        try:
            store.ping()
            return jsonify({
                "status": "healthy",
                "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            }), 200
        except StorageError as e:
            return jsonify({
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            }), 503

    # =========================================================================
    # API DOCUMENTATION ENDPOINT
    # =========================================================================

    @app.route("/", methods=["GET"])
    def api_documentation():
        """Confirm the server is up and list the available endpoints"""
        return jsonify({
            "message": "Server is running and ready to handle requests!",
            "endpoints": {
                "Authentication": {
                    "POST /user_name": "Sign up with {form, password}",
                    "POST /login": "Log in with {form, password}",
                },
                "Teams": {
                    "GET /teams": "List reference teams",
                    "POST /teamassigned": "Assign a team with {username, team}",
                    "GET /teamassigned?username=": "Get a user's team",
                },
                "Products": {
                    "POST /product_listing": "Add a product {Team, P_url, P_name, P_price}",
                    "GET /product_listing?Team=": "List a team's products",
                },
                "Cart": {
                    "POST /add_to_cart": "Add {Username, Team, P_url, P_name, P_price}",
                    "GET /add_to_cart?Username=": "List a user's cart",
                    "DELETE /add_to_cart?productId=": "Remove a cart item",
                },
                "Admin/Utility": {
                    "POST /seed": "Re-seed reference teams",
                    "GET /health": "API health check",
                },
            },
        }), 200

    return app


# =============================================================================
# RUN APPLICATION
# =============================================================================

if __name__ == "__main__":
    port = int(os.getenv("PORT", DEFAULT_PORT))
    create_app().run(host=os.getenv("HOST", "0.0.0.0"), port=port)
