#!/usr/bin/env python3.13

#      _                  __                 _
#  ___| |_ ___  _ __ ___ / _|_ __ ___  _ __ | |_
# / __| __/ _ \| '__/ _ \ |_| '__/ _ \| '_ \| __|
# \__ \ || (_) | | |  __/  _| | | (_) | | | | |_
# |___/\__\___/|_|  \___|_| |_|  \___/|_| |_|\__| 🛒
#

# --sql is used for syntax highlighting inline sql queries

import atexit
import logging
import math
import os
import re
import signal
import sqlite3
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Sequence

from termcolor import cprint, colored
from colorama import just_fix_windows_console as enable_windows_ansi_interpretation

# fix windows terminal misinterpreting ansi escape sequences
enable_windows_ansi_interpretation()

logger = logging.getLogger("storefront")

# constants
NEARBY_RADIUS = 30.0  # same unit as the coordinates (degrees), not miles
MAX_USER_NAME = 50
PASSWORD_LENGTH = (3, 11)
MAX_PRODUCT_NAME = 30
RECENT_LIMIT = 5
DEFAULT_DB_PATH = "storefront.db"
MAX_INTEGER = 2**63 - 1  # largest value sqlite stores in an INTEGER column

INTEGER_PATTERN = re.compile(r"[-+]?\d+", re.ASCII)
LATITUDE_PATTERN = re.compile(r"[-+]?([1-8]?\d(\.\d{1,6})?|90(\.0{1,6})?)", re.ASCII)
LONGITUDE_PATTERN = re.compile(r"[-+]?(180(\.0{1,6})?|(1[0-7]\d|[1-9]?\d)(\.\d{1,6})?)", re.ASCII)

# errors
class StorefrontError(Exception):
    """base error for the storefront client"""

class StorageError(StorefrontError):
    """a statement failed against the database"""

class OutOfStockError(StorefrontError):
    """conditional stock decrement found fewer units than ordered"""

# helpers
class Outcome(Enum):
    """three-way result of parsing a form field"""
    OK = "ok"
    INVALID = "invalid"
    SKIPPED = "skipped"

@dataclass(frozen=True)
class Parsed:
    """parsed field value; only meaningful when outcome is OK"""
    outcome: Outcome
    value: int | float | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

def parse_int(text: str) -> Parsed:
    """parse a non-negative whole number; blank input is skipped"""
    text = text.strip()
    if not text:
        return Parsed(Outcome.SKIPPED)
    if INTEGER_PATTERN.fullmatch(text) is None:
        return Parsed(Outcome.INVALID, message="invalid input, this field should be a whole number")
    value = int(text)
    if value < 0:
        return Parsed(Outcome.INVALID, message="invalid input, this field should be a positive number")
    if value > MAX_INTEGER:
        return Parsed(Outcome.INVALID, message=f"invalid input, this field must be at most {MAX_INTEGER}")
    return Parsed(Outcome.OK, value)

def parse_float(text: str) -> Parsed:
    """parse a non-negative finite decimal; blank input is skipped"""
    text = text.strip()
    if not text:
        return Parsed(Outcome.SKIPPED)
    try:
        value = float(text)
    except ValueError:
        return Parsed(Outcome.INVALID, message="invalid input, this field should be a number")
    if not math.isfinite(value):
        return Parsed(Outcome.INVALID, message="invalid input, this field should be a number")
    if value < 0:
        return Parsed(Outcome.INVALID, message="invalid input, this field should be a positive number")
    return Parsed(Outcome.OK, value)

def validate_coordinate(text: str, latitude: bool) -> bool:
    """match latitude [-90, 90] or longitude [-180, 180], max 6 fractional digits"""
    pattern = LATITUDE_PATTERN if latitude else LONGITUDE_PATTERN
    return pattern.fullmatch(text.strip()) is not None

def distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """planar euclidean distance between two coordinate pairs (not great-circle)"""
    return math.sqrt((lat1 - lat2) ** 2 + (lon1 - lon2) ** 2)

def color_money(amount: float) -> str:
    """format amount as green money string"""
    return colored(f"${amount:.2f}", "green")

def parse_boolean_input(answer: str) -> bool | None:
    """parse y/n style input; blank means no, anything else is none"""
    a = answer.lower().strip()
    if a in ("y", "yes"):
        return True
    if a in ("", "n", "no"):
        return False
    return None

# console port
class Terminal:
    """line-oriented input/output port handed to every workflow"""
    def ask(self, prompt: str, verbatim: bool = False) -> str:
        """read one line; surrounding whitespace is dropped unless verbatim"""
        answer = input(colored(prompt, "magenta"))
        return answer if verbatim else answer.strip()

    def say(self, text: str = "", color: str | None = None, attrs: list[str] | None = None):
        cprint(text, color, attrs=attrs)

    def confirm(self, prompt: str) -> bool:
        """y/N question; re-asks on anything unrecognised"""
        while True:
            answer = parse_boolean_input(self.ask(f"{prompt} [y/N]: "))
            if answer is not None:
                return answer
            self.say("invalid input, please answer y or n.", "red")

    def read_choice(self) -> int:
        """read a numeric menu choice, re-asking until it parses"""
        while True:
            raw = self.ask("please make your choice: ")
            try:
                return int(raw)
            except ValueError:
                self.say("your input is invalid!", "red")

    def ask_number(self, prompt: str, parser: Callable[[str], Parsed] = parse_int,
                   accept: Callable[[Any], bool] | None = None) -> int | float | None:
        """re-prompt until a value parses and is accepted; none when left blank"""
        while True:
            parsed = parser(self.ask(prompt))
            if parsed.outcome is Outcome.SKIPPED:
                return None
            if not parsed.ok:
                self.say(parsed.message, "red")
                continue
            if accept is None or accept(parsed.value):
                return parsed.value

    def table(self, rows: Sequence[sqlite3.Row], empty: str = "no rows found") -> int:
        """print rows tab separated under a bold header; returns row count"""
        if not rows:
            self.say(empty, "yellow")
            return 0
        self.say("\t".join(rows[0].keys()), attrs=["bold"])
        for row in rows:
            self.say("\t".join("" if v is None else str(v) for v in row))
        return len(rows)

# database layer
class DatabaseManager:
    """own the sqlite connection, schema and every statement issued"""
    EXISTENCE_CHECKS = frozenset({
        ("users", "id"),
        ("users", "name"),
        ("store", "id"),
        ("product", "product_name"),
        ("warehouse", "id"),
    })

    def __init__(self, path: str = DEFAULT_DB_PATH):
        self.path = path
        try:
            self.conn = sqlite3.connect(path)
            self.conn.row_factory = sqlite3.Row
            self.conn.autocommit = True
            self.conn.execute("--sql\nPRAGMA foreign_keys=ON;")
            self._create_schema()
            self._seed_default_admin()
        except sqlite3.Error as e:
            raise StorageError(f"unable to open database {path!r}: {e}") from e

    def _create_schema(self):
        """create tables if missing"""
        self.conn.executescript(
            """--sql
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                password TEXT NOT NULL, -- clear text, kept for login compatibility
                latitude REAL NOT NULL,
                longitude REAL NOT NULL,
                type TEXT NOT NULL DEFAULT 'customer'
                    CHECK (type IN ('customer', 'manager', 'admin'))
            );
            CREATE TABLE IF NOT EXISTS store (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT,
                manager_id INTEGER REFERENCES users(id),
                latitude REAL NOT NULL,
                longitude REAL NOT NULL,
                date_established TEXT DEFAULT CURRENT_DATE
            );
            CREATE TABLE IF NOT EXISTS product (
                store_id INTEGER NOT NULL REFERENCES store(id),
                product_name TEXT NOT NULL,
                number_of_units INTEGER NOT NULL CHECK (number_of_units >= 0),
                price_per_unit REAL NOT NULL CHECK (price_per_unit >= 0),
                PRIMARY KEY (store_id, product_name)
            );
            CREATE TABLE IF NOT EXISTS warehouse (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                area TEXT,
                latitude REAL NOT NULL,
                longitude REAL NOT NULL
            );
            CREATE TABLE IF NOT EXISTS orders (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                customer_id INTEGER NOT NULL REFERENCES users(id),
                store_id INTEGER NOT NULL REFERENCES store(id),
                product_name TEXT NOT NULL,
                units_ordered INTEGER NOT NULL CHECK (units_ordered > 0),
                order_time TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            );
            CREATE TABLE IF NOT EXISTS product_updates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                manager_id INTEGER NOT NULL REFERENCES users(id),
                store_id INTEGER NOT NULL REFERENCES store(id),
                product_name TEXT NOT NULL,
                updated_on TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            );
            CREATE TABLE IF NOT EXISTS product_supply_requests (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                manager_id INTEGER NOT NULL REFERENCES users(id),
                warehouse_id INTEGER NOT NULL REFERENCES warehouse(id),
                store_id INTEGER NOT NULL REFERENCES store(id),
                product_name TEXT NOT NULL,
                units_requested INTEGER NOT NULL CHECK (units_requested > 0)
            );
            """
        )

    def _seed_default_admin(self):
        """create a default admin user if missing"""
        self.conn.execute(
            """--sql
            INSERT OR IGNORE INTO users(name, password, latitude, longitude, type)
            VALUES (?,?,?,?,?);
            """,
            ("admin", "admin", 0.0, 0.0, AccountManager.Role.ADMIN.value)
        )

    def close(self):
        """close the connection (safe to call twice)"""
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    # statements
    def execute(self, sql: str, params: Sequence = ()) -> sqlite3.Cursor:
        """run one parameterized statement; sqlite errors surface as StorageError"""
        logger.debug("sql: %s %r", " ".join(sql.split()), tuple(params))
        try:
            return self.conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    def query(self, sql: str, params: Sequence = ()) -> list[sqlite3.Row]:
        """run a select and return every row"""
        return self.execute(sql, params).fetchall()

    def fetch_one(self, sql: str, params: Sequence = ()) -> sqlite3.Row | None:
        """run a select and return the first row or none"""
        return self.execute(sql, params).fetchone()

    @contextmanager
    def transaction(self) -> Iterator["DatabaseManager"]:
        """unit of work: everything inside commits together or not at all"""
        self.execute("BEGIN IMMEDIATE;")
        try:
            yield self
        except BaseException:
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK;")
            logger.debug("transaction rolled back")
            raise
        try:
            self.execute("COMMIT;")
        except StorageError:
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK;")
            raise

    # existence checks
    def row_exists(self, table: str, column: str, value: Any) -> bool:
        """true if any row of table has column equal to value"""
        # identifiers cannot be bound, so only known pairs are allowed
        if (table, column) not in self.EXISTENCE_CHECKS:
            raise ValueError(f"no existence check for {table}.{column}")
        return self.fetch_one(
            f"SELECT 1 FROM {table} WHERE {column}=? LIMIT 1;", (value,)
        ) is not None

    def manages_store(self, manager_id: int, store_id: int) -> bool:
        """true if store_id is run by manager_id"""
        return self.fetch_one(
            "SELECT 1 FROM store WHERE id=? AND manager_id=? LIMIT 1;",
            (store_id, manager_id)
        ) is not None

    def store_has_product(self, store_id: int, product_name: str) -> bool:
        """true if the store carries product_name"""
        return self.fetch_one(
            "SELECT 1 FROM product WHERE store_id=? AND product_name=? LIMIT 1;",
            (store_id, product_name)
        ) is not None

def ask_product(terminal: Terminal, db: DatabaseManager, store_id: int, prompt: str) -> str | None:
    """prompt until the name is a product carried by store_id; none when left blank"""
    while True:
        name = terminal.ask(prompt)
        if not name:
            return None
        if db.store_has_product(store_id, name):
            return name
        terminal.say(f"store {store_id} does not carry a product named {name!r}", "red")

# accounts/auth
class AccountManager:
    """user accounts, session state and admin user edits"""
    class Role(Enum):
        CUSTOMER = "customer"
        MANAGER = "manager"
        ADMIN = "admin"

    def __init__(self, db: DatabaseManager, terminal: Terminal):
        self.db = db
        self.terminal = terminal
        self.current_user_id: int | None = None

    @property
    def current_role(self) -> "AccountManager.Role | None":
        """role of the session user, read fresh from storage every time"""
        if self.current_user_id is None:
            return None
        row = self.db.fetch_one("SELECT type FROM users WHERE id=?;", (self.current_user_id,))
        return AccountManager.Role(row["type"].strip()) if row else None

    def name_unique(self, name: str) -> bool:
        """true if no user already has exactly this name"""
        return not self.db.row_exists("users", "name", name)

    # shared field prompts
    def _prompt_name(self, prompt: str) -> str | None:
        while True:
            name = self.terminal.ask(prompt)
            if not name:
                return None
            if len(name) > MAX_USER_NAME:
                self.terminal.say(f"name must be {MAX_USER_NAME} characters or less", "red")
            elif not self.name_unique(name):
                self.terminal.say("that name has already been taken, please choose another", "red")
            else:
                return name

    def _prompt_password(self, prompt: str) -> str | None:
        low, high = PASSWORD_LENGTH
        while True:
            password = self.terminal.ask(prompt, verbatim=True)
            if not password:
                return None
            if low <= len(password) <= high:
                return password
            self.terminal.say(f"password must be between {low} and {high} characters", "red")

    def _prompt_coordinate(self, latitude: bool) -> float | None:
        if latitude:
            label, bound = "latitude", 90
        else:
            label, bound = "longitude", 180
        while True:
            raw = self.terminal.ask(
                f"enter {label} (-{bound} to {bound}, up to six digits after the decimal point): "
            )
            if not raw:
                return None
            if validate_coordinate(raw, latitude):
                return float(raw)
            self.terminal.say(
                f"invalid input, {label} should be in the range of -{bound} to {bound} "
                "with up to six digits after the decimal point", "red"
            )

    # workflows
    def create_user(self) -> int | None:
        """prompt for a new customer account; blank at any prompt cancels"""
        t = self.terminal
        name = self._prompt_name(f"enter name ({MAX_USER_NAME} characters max, blank to cancel): ")
        if name is None:
            t.say("cancelled", "yellow"); return None
        low, high = PASSWORD_LENGTH
        password = self._prompt_password(f"enter password ({low}-{high} characters): ")
        if password is None:
            t.say("cancelled", "yellow"); return None
        latitude = self._prompt_coordinate(latitude=True)
        if latitude is None:
            t.say("cancelled", "yellow"); return None
        longitude = self._prompt_coordinate(latitude=False)
        if longitude is None:
            t.say("cancelled", "yellow"); return None
        cur = self.db.execute(
            "INSERT INTO users(name, password, latitude, longitude, type) VALUES(?,?,?,?,?);",
            (name, password, latitude, longitude, AccountManager.Role.CUSTOMER.value)
        )
        t.say("user successfully created!", "green")
        return cur.lastrowid

    def login(self) -> int | None:
        """exact name + password match; same message for every failure"""
        t = self.terminal
        name = t.ask("enter name: ")
        password = t.ask("enter password: ", verbatim=True)
        user = self.db.fetch_one(
            "SELECT id FROM users WHERE name=? AND password=?;",
            (name, password)
        )
        if user is None:
            t.say("unrecognized name or incorrect password", "red")
            return None
        self.current_user_id = user["id"]
        role = self.current_role
        prefix = f"{role.value}: " if role and role is not AccountManager.Role.CUSTOMER else ""
        t.say(f"logged in as {prefix}{colored(name, 'yellow', attrs=['bold'])}", "green")
        return user["id"]

    def logout(self):
        """log out current user"""
        if self.current_user_id is None:
            self.terminal.say("no user logged in", "red")
            return
        self.terminal.say(f"logged out user #{self.current_user_id}", "green")
        self.current_user_id = None

    def admin_update_user(self):
        """pick users by id and edit their fields until told to stop"""
        t = self.terminal
        while True:
            t.table(self.db.query("SELECT id, name, latitude, longitude, type FROM users ORDER BY id;"))
            target = t.ask_number(
                "enter the id of the user you are editing (blank to cancel): ",
                accept=self._user_exists
            )
            if target is not None:
                self._edit_user_fields(target)
            if not t.confirm("would you like to update another user's information?"):
                return

    def _user_exists(self, user_id: int) -> bool:
        if self.db.row_exists("users", "id", user_id):
            return True
        self.terminal.say(f"no user with id {user_id}", "red")
        return False

    def _edit_user_fields(self, user_id: int):
        t = self.terminal
        editors = {
            1: self._edit_name,
            2: self._edit_password,
            3: self._edit_location,
            4: self._edit_role,
        }
        while True:
            for line in ("1. name", "2. password", "3. latitude / longitude", "4. user type", "5. done"):
                t.say(line)
            choice = t.read_choice()
            if choice == 5:
                return
            editor = editors.get(choice)
            if editor is None:
                t.say("unrecognized choice", "red")
            else:
                editor(user_id)
            if not t.confirm("would you like to update another field?"):
                return

    def _edit_name(self, user_id: int):
        name = self._prompt_name(f"enter the updated name ({MAX_USER_NAME} characters max, blank to cancel): ")
        if name is None:
            self.terminal.say("name unchanged", "yellow"); return
        self.db.execute("UPDATE users SET name=? WHERE id=?;", (name, user_id))
        self.terminal.say("name updated", "green")

    def _edit_password(self, user_id: int):
        low, high = PASSWORD_LENGTH
        password = self._prompt_password(f"enter the updated password ({low}-{high} characters, blank to cancel): ")
        if password is None:
            self.terminal.say("password unchanged", "yellow"); return
        self.db.execute("UPDATE users SET password=? WHERE id=?;", (password, user_id))
        self.terminal.say("password updated", "green")

    def _edit_location(self, user_id: int):
        latitude = self._prompt_coordinate(latitude=True)
        if latitude is None:
            self.terminal.say("location unchanged", "yellow"); return
        longitude = self._prompt_coordinate(latitude=False)
        if longitude is None:
            self.terminal.say("location unchanged", "yellow"); return
        self.db.execute(
            "UPDATE users SET latitude=?, longitude=? WHERE id=?;",
            (latitude, longitude, user_id)
        )
        self.terminal.say("location updated", "green")

    def _edit_role(self, user_id: int):
        t = self.terminal
        roles = {str(i): role for i, role in enumerate(AccountManager.Role, start=1)}
        while True:
            for key, role in roles.items():
                t.say(f"{key}. {role.value}")
            raw = t.ask("enter the updated user type (blank to cancel): ")
            if not raw:
                t.say("user type unchanged", "yellow"); return
            role = roles.get(raw)
            if role is None:
                t.say("unrecognized choice", "red")
                continue
            self.db.execute("UPDATE users SET type=? WHERE id=?;", (role.value, user_id))
            t.say(f"user type set to {role.value}", "green")
            return

# store browsing / ordering
class StoreManager:
    """customer-facing store search, product listing and ordering"""
    def __init__(self, db: DatabaseManager, account_manager: AccountManager, terminal: Terminal):
        self.db = db
        self.account_manager = account_manager
        self.terminal = terminal

    def stores_within_radius(self, user_id: int) -> list[tuple[int, float]]:
        """(store id, distance) for stores within NEARBY_RADIUS, in storage order"""
        user = self.db.fetch_one("SELECT latitude, longitude FROM users WHERE id=?;", (user_id,))
        if user is None:
            return []
        nearby = []
        for store in self.db.query("SELECT id, latitude, longitude FROM store ORDER BY id;"):
            d = distance(user["latitude"], user["longitude"], store["latitude"], store["longitude"])
            if d <= NEARBY_RADIUS:
                nearby.append((store["id"], d))
        return nearby

    def _print_nearby(self, nearby: list[tuple[int, float]]):
        if not nearby:
            self.terminal.say(f"no stores found within {NEARBY_RADIUS:g} of your location", "yellow")
            return
        self.terminal.say("store id\tdistance (deg)", attrs=["bold"])
        for store_id, d in nearby:
            self.terminal.say(f"{store_id}\t{d:.2f}")

    def view_stores(self):
        """list stores near the session user"""
        self._print_nearby(self.stores_within_radius(self.account_manager.current_user_id))

    def view_products(self):
        """list products of a chosen store"""
        store_id = self.terminal.ask_number(
            "enter the id of the store to view products at (blank to cancel): ",
            accept=self._store_exists
        )
        if store_id is None:
            return
        self.terminal.table(self.db.query(
            """--sql
            SELECT product_name, number_of_units, price_per_unit
            FROM product WHERE store_id=? ORDER BY product_name;
            """,
            (store_id,)
        ), empty=f"store {store_id} has no products")

    def _store_exists(self, store_id: int) -> bool:
        if self.db.row_exists("store", "id", store_id):
            return True
        self.terminal.say(f"no store with id {store_id}", "red")
        return False

    def place_order(self):
        """nearby store -> product -> quantity, then one atomic order"""
        t = self.terminal
        customer_id = self.account_manager.current_user_id
        nearby = self.stores_within_radius(customer_id)
        self._print_nearby(nearby)
        if not nearby:
            return
        nearby_ids = {store_id for store_id, _ in nearby}

        def in_radius(store_id: int) -> bool:
            if store_id in nearby_ids:
                return True
            t.say("please enter a store id from the list of nearby stores", "red")
            return False

        store_id = t.ask_number(
            "\nenter the id of the store you will order from (blank to cancel): ", accept=in_radius
        )
        if store_id is None:
            return
        t.table(self.db.query(
            "SELECT product_name, number_of_units, price_per_unit FROM product WHERE store_id=? ORDER BY product_name;",
            (store_id,)
        ), empty=f"store {store_id} has no products")
        product_name = ask_product(
            t, self.db, store_id,
            f"enter the name of the product you are ordering from store {store_id} (blank to cancel): "
        )
        if product_name is None:
            return
        product = self.db.fetch_one(
            "SELECT number_of_units, price_per_unit FROM product WHERE store_id=? AND product_name=?;",
            (store_id, product_name)
        )
        available = product["number_of_units"]
        t.say(f"\nstore {store_id} has {available} units of {product_name} "
              f"available at {color_money(product['price_per_unit'])} per unit.")

        def within_stock(units: int) -> bool:
            if units == 0:
                t.say("you must order at least 1 unit", "red"); return False
            if units > available:
                t.say("you cannot order more units than the store has available", "red"); return False
            return True

        units = t.ask_number(
            f"enter the number of units of {product_name} you want to order (blank to cancel): ",
            accept=within_stock
        )
        if units is None:
            return
        try:
            order_id = self.submit_order(customer_id, store_id, product_name, units)
        except OutOfStockError as e:
            logger.info("order rejected: %s", e)
            t.say("stock changed before the order went through, order not placed", "red")
            return
        t.say(f"order #{order_id} placed for {units} units of {product_name} from store {store_id}.", "green")

    def submit_order(self, customer_id: int, store_id: int, product_name: str, units: int) -> int:
        """insert the order and take units off the shelf as one unit of work"""
        with self.db.transaction():
            cur = self.db.execute(
                "INSERT INTO orders(customer_id, store_id, product_name, units_ordered) VALUES(?,?,?,?);",
                (customer_id, store_id, product_name, units)
            )
            updated = self.db.execute(
                """--sql
                UPDATE product SET number_of_units = number_of_units - ?
                WHERE store_id=? AND product_name=? AND number_of_units >= ?;
                """,
                (units, store_id, product_name, units)
            )
            if updated.rowcount != 1:
                raise OutOfStockError(f"store {store_id} has fewer than {units} units of {product_name}")
        return cur.lastrowid

    def view_recent_orders(self):
        """five most recent orders of the session user"""
        self.terminal.table(self.db.query(
            """--sql
            SELECT store_id, product_name, units_ordered, order_time
            FROM orders WHERE customer_id=?
            ORDER BY order_time DESC, id DESC
            LIMIT ?;
            """,
            (self.account_manager.current_user_id, RECENT_LIMIT)
        ), empty="no orders yet")

# inventory / manager tools
class InventoryManager:
    """product edits, supply requests and manager reports"""
    PRODUCT_FIELDS = ("product_name", "number_of_units", "price_per_unit")

    class SupplyResult(Enum):
        RESTOCKED = "restocked"
        NEW_PRODUCT = "new product"
        UNPRICED = "unpriced"

    def __init__(self, db: DatabaseManager, account_manager: AccountManager, terminal: Terminal):
        self.db = db
        self.account_manager = account_manager
        self.terminal = terminal

    def nearest_price(self, store_id: int, product_name: str) -> float | None:
        """price of product_name at the closest other store carrying it (none if nobody does)"""
        origin = self.db.fetch_one("SELECT latitude, longitude FROM store WHERE id=?;", (store_id,))
        if origin is None:
            return None
        rows = self.db.query(
            """--sql
            SELECT s.latitude, s.longitude, p.price_per_unit
            FROM store s
            JOIN product p ON p.store_id = s.id
            WHERE s.id != ? AND p.product_name = ?
            ORDER BY s.id;
            """,
            (store_id, product_name)
        )
        best_distance = math.inf
        best_price = None
        for row in rows:
            d = distance(origin["latitude"], origin["longitude"], row["latitude"], row["longitude"])
            if d < best_distance:  # ties keep the first one seen
                best_distance = d
                best_price = row["price_per_unit"]
        return best_price

    def _check_store_access(self, store_id: int, admin: bool) -> bool:
        t = self.terminal
        if not self.db.row_exists("store", "id", store_id):
            t.say(f"no store with id {store_id}", "red"); return False
        if not admin and not self.db.manages_store(self.account_manager.current_user_id, store_id):
            t.say("invalid input, you do not manage this store", "red"); return False
        return True

    def _list_products(self, store_id: int):
        self.terminal.table(self.db.query(
            "SELECT product_name, number_of_units, price_per_unit FROM product WHERE store_id=? ORDER BY product_name;",
            (store_id,)
        ), empty=f"store {store_id} has no products")

    # product updates
    def update_product(self, admin: bool = False):
        """edit products store by store; renames are admin only"""
        t = self.terminal
        while True:
            if admin:
                stores = self.db.query("SELECT id, latitude, longitude FROM store ORDER BY id;")
            else:
                stores = self.db.query(
                    "SELECT id, latitude, longitude FROM store WHERE manager_id=? ORDER BY id;",
                    (self.account_manager.current_user_id,)
                )
            if not t.table(stores, empty="no stores to update"):
                return
            store_id = t.ask_number(
                "enter the id of the store you are updating a product at (blank to cancel): ",
                accept=lambda sid: self._check_store_access(sid, admin)
            )
            if store_id is None:
                return
            while True:
                self._list_products(store_id)
                product_name = ask_product(
                    t, self.db, store_id, "enter the name of the product you are updating (blank to cancel): "
                )
                if product_name is not None:
                    self._edit_product(store_id, product_name, admin)
                t.say()
                if not t.confirm(f"do you want to update another product at store {store_id}?"):
                    break
            t.say()
            if not t.confirm("do you want to update products for another store?"):
                return

    def _prompt_new_product_name(self, store_id: int) -> str | None:
        t = self.terminal
        while True:
            name = t.ask("update product name? provide the updated name (blank to skip): ")
            if not name:
                return None
            if len(name) > MAX_PRODUCT_NAME:
                t.say(f"product name must be {MAX_PRODUCT_NAME} characters or less", "red")
            elif self.db.store_has_product(store_id, name):
                t.say(f"product named {name} already exists at store {store_id}", "red")
            else:
                return name

    def _edit_product(self, store_id: int, product_name: str, admin: bool) -> int:
        """collect field edits then apply each one with its audit row"""
        t = self.terminal
        new_name = self._prompt_new_product_name(store_id) if admin else None
        units = t.ask_number("update number of units? provide the updated value (blank to skip): ")
        price = t.ask_number(
            "update price per unit? provide the updated price (blank to skip): ", parser=parse_float
        )
        changes = [
            ("product_name", new_name),
            ("number_of_units", units),
            ("price_per_unit", price),
        ]
        applied = 0
        for column, value in changes:
            if value is None:
                continue
            self.apply_product_change(store_id, product_name, column, value)
            if column == "product_name":
                product_name = value
            applied += 1
        if applied:
            t.say(f"{product_name} updated ({applied} field{'s' if applied != 1 else ''})", "green")
        else:
            t.say("nothing to update", "yellow")
        return applied

    def apply_product_change(self, store_id: int, product_name: str, column: str, value: Any):
        """one product field update plus exactly one audit row, atomically"""
        if column not in self.PRODUCT_FIELDS:
            raise ValueError(f"unknown product field {column!r}")
        audited_name = value if column == "product_name" else product_name
        with self.db.transaction():
            self.db.execute(
                f"UPDATE product SET {column}=? WHERE store_id=? AND product_name=?;",
                (value, store_id, product_name)
            )
            self.db.execute(
                "INSERT INTO product_updates(manager_id, store_id, product_name) VALUES(?,?,?);",
                (self.account_manager.current_user_id, store_id, audited_name)
            )

    # supply requests
    def place_supply_request(self):
        """request units from a warehouse and stock them at a store"""
        t = self.terminal
        store_id = t.ask_number(
            "enter store id (blank to cancel): ", accept=lambda sid: self._check_store_access(sid, admin=True)
        )
        if store_id is None:
            return
        product_name = self._prompt_catalogue_product()
        if product_name is None:
            return

        def at_least_one(units: int) -> bool:
            if units > 0:
                return True
            t.say("invalid input, you must request at least 1 unit", "red")
            return False

        units = t.ask_number(
            f"enter requested number of units of {product_name} (blank to cancel): ", accept=at_least_one
        )
        if units is None:
            return

        def warehouse_exists(warehouse_id: int) -> bool:
            if self.db.row_exists("warehouse", "id", warehouse_id):
                return True
            t.say(f"no warehouse with id {warehouse_id}", "red")
            return False

        warehouse_id = t.ask_number(
            "enter the id of the warehouse to request from (blank to cancel): ", accept=warehouse_exists
        )
        if warehouse_id is None:
            return
        result = self.submit_supply_request(warehouse_id, store_id, product_name, units)
        if result is InventoryManager.SupplyResult.UNPRICED:
            t.say(f"no other store carries {product_name}, so store {store_id} has no price for it; "
                  "the request was recorded but the product was not added", "yellow")
        t.say(f"order for {units} unit(s) of {product_name} placed for store {store_id} "
              f"from warehouse {warehouse_id} ({result.value}).", "green")

    def _prompt_catalogue_product(self) -> str | None:
        t = self.terminal
        while True:
            name = t.ask("enter product name (blank to cancel): ")
            if not name:
                return None
            if len(name) > MAX_PRODUCT_NAME:
                t.say(f"invalid input, product name must be {MAX_PRODUCT_NAME} characters or less", "red")
            elif not self.db.row_exists("product", "product_name", name):
                t.say(f"invalid input, no product named {name!r} exists", "red")
            else:
                return name

    def submit_supply_request(self, warehouse_id: int, store_id: int, product_name: str,
                              units: int) -> "InventoryManager.SupplyResult":
        """record the request and restock (or introduce) the product as one unit of work"""
        manager_id = self.account_manager.current_user_id
        with self.db.transaction():
            self.db.execute(
                """--sql
                INSERT INTO product_supply_requests(manager_id, warehouse_id, store_id, product_name, units_requested)
                VALUES(?,?,?,?,?);
                """,
                (manager_id, warehouse_id, store_id, product_name, units)
            )
            if self.db.store_has_product(store_id, product_name):
                self.db.execute(
                    "UPDATE product SET number_of_units = number_of_units + ? WHERE store_id=? AND product_name=?;",
                    (units, store_id, product_name)
                )
                return InventoryManager.SupplyResult.RESTOCKED
            price = self.nearest_price(store_id, product_name)
            if price is None:
                # request row stays without a product row; surfaced to the manager, not repaired
                logger.warning("supply request for %r at store %s has no price source", product_name, store_id)
                return InventoryManager.SupplyResult.UNPRICED
            self.db.execute(
                "INSERT INTO product(store_id, product_name, number_of_units, price_per_unit) VALUES(?,?,?,?);",
                (store_id, product_name, units, price)
            )
            return InventoryManager.SupplyResult.NEW_PRODUCT

    # manager reports
    def view_recent_updates(self):
        """five most recent product updates across the manager's stores"""
        self.terminal.table(self.db.query(
            """--sql
            SELECT id, manager_id, store_id, product_name, updated_on
            FROM product_updates
            WHERE store_id IN (SELECT id FROM store WHERE manager_id=?)
            ORDER BY updated_on DESC, id DESC
            LIMIT ?;
            """,
            (self.account_manager.current_user_id, RECENT_LIMIT)
        ), empty="no product updates")

    def view_popular_products(self):
        """five most ordered products across the manager's stores"""
        self.terminal.table(self.db.query(
            """--sql
            SELECT product_name, COUNT(*) AS order_count
            FROM orders
            WHERE store_id IN (SELECT id FROM store WHERE manager_id=?)
            GROUP BY product_name
            ORDER BY order_count DESC, product_name ASC
            LIMIT ?;
            """,
            (self.account_manager.current_user_id, RECENT_LIMIT)
        ), empty="no orders yet")

    def view_popular_customers(self):
        """five customers with the most orders across the manager's stores"""
        self.terminal.table(self.db.query(
            """--sql
            SELECT o.customer_id, u.name, u.latitude, u.longitude, COUNT(*) AS order_count
            FROM orders o
            JOIN users u ON u.id = o.customer_id
            WHERE o.store_id IN (SELECT id FROM store WHERE manager_id=?)
            GROUP BY o.customer_id, u.name, u.latitude, u.longitude
            ORDER BY order_count DESC, o.customer_id ASC
            LIMIT ?;
            """,
            (self.account_manager.current_user_id, RECENT_LIMIT)
        ), empty="no orders yet")

    def view_store_orders(self):
        """list every order of one of the manager's stores, repeat on request"""
        t = self.terminal
        while True:
            store_id = t.ask_number(
                "enter the id of the store to view orders from (blank to cancel): ",
                accept=lambda sid: self._check_store_access(sid, admin=False)
            )
            if store_id is None:
                return
            t.table(self.db.query(
                """--sql
                SELECT id, customer_id, store_id, product_name, units_ordered, order_time
                FROM orders WHERE store_id=? ORDER BY id;
                """,
                (store_id,)
            ), empty=f"no orders at store {store_id}")
            if not t.confirm("do you want to view orders from another store?"):
                return

# menu infrastructure
class MenuOption:
    """bind a numeric choice to a workflow, optionally limited to some roles"""
    def __init__(self, choice: int, label: str, function: Callable,
                 roles: Sequence[AccountManager.Role] | None = None, separated: bool = False):
        self.choice = choice
        self.label = label
        self.function = function
        self.roles = tuple(roles) if roles is not None else None
        self.separated = separated

    def allowed(self, role: AccountManager.Role | None) -> bool:
        return self.roles is None or role in self.roles

class Menu:
    """numbered screen; dispatch is the boundary where workflow storage failures stop"""
    def __init__(self, title: str, terminal: Terminal, options: list[MenuOption]):
        self.title = title
        self.terminal = terminal
        self.options = options

    def visible(self, role: AccountManager.Role | None) -> list[MenuOption]:
        return [o for o in self.options if o.allowed(role)]

    def show(self, role: AccountManager.Role | None = None):
        t = self.terminal
        t.say(f"\n{self.title}", "green", attrs=["bold"])
        t.say("-" * len(self.title))
        for option in self.visible(role):
            if option.separated:
                t.say(".........................")
            t.say(f"{option.choice}. {option.label}")

    def dispatch(self, choice: int, role: AccountManager.Role | None = None):
        """run the option for choice; storage errors abort only this workflow"""
        option = next((o for o in self.visible(role) if o.choice == choice), None)
        if option is None:
            self.terminal.say("unrecognized choice!", "red")
            return None
        try:
            return option.function()
        except StorageError as e:
            logger.error("workflow %r aborted: %s", option.label, e)
            self.terminal.say(f"storage error: {e}", "red")
            return None

# application wiring
class Application:
    """wire managers into the main and per-role menus and run the session loop"""
    def __init__(self, db: DatabaseManager, terminal: Terminal):
        self.db = db
        self.terminal = terminal
        self.running = True
        self.account_manager = AccountManager(db, terminal)
        self.store_manager = StoreManager(db, self.account_manager, terminal)
        self.inventory_manager = InventoryManager(db, self.account_manager, terminal)

        Role = AccountManager.Role
        customer, manager, admin = (Role.CUSTOMER,), (Role.MANAGER,), (Role.ADMIN,)
        self.main_menu = Menu("main menu", terminal, [
            MenuOption(1, "create user", self.account_manager.create_user),
            MenuOption(2, "log in", self.account_manager.login),
            MenuOption(9, "< exit", self.stop, separated=True),
        ])
        self.user_menu = Menu("user menu", terminal, [
            MenuOption(1, f"view stores within {NEARBY_RADIUS:g} (deg)", self.store_manager.view_stores),
            MenuOption(2, "view product list", self.store_manager.view_products, customer + manager),
            MenuOption(3, "place an order", self.store_manager.place_order, customer),
            MenuOption(4, f"view {RECENT_LIMIT} most recent orders", self.store_manager.view_recent_orders, customer),
            MenuOption(3, "update product", self.inventory_manager.update_product, manager),
            MenuOption(4, f"view {RECENT_LIMIT} most recent product updates",
                       self.inventory_manager.view_recent_updates, manager),
            MenuOption(5, f"view {RECENT_LIMIT} most popular items", self.inventory_manager.view_popular_products, manager),
            MenuOption(6, f"view {RECENT_LIMIT} most popular customers",
                       self.inventory_manager.view_popular_customers, manager),
            MenuOption(7, "place product supply request to warehouse",
                       self.inventory_manager.place_supply_request, manager),
            MenuOption(8, "view orders", self.inventory_manager.view_store_orders, manager),
            MenuOption(2, "view/update user information", self.account_manager.admin_update_user, admin),
            MenuOption(3, "view/update product", lambda: self.inventory_manager.update_product(admin=True), admin),
            MenuOption(20, "log out", self.account_manager.logout, separated=True),
        ])

    def stop(self):
        self.running = False

    def run(self):
        """main menu loop; a successful login opens a user session"""
        t = self.terminal
        while self.running:
            self.main_menu.show()
            self.main_menu.dispatch(t.read_choice())
            if self.account_manager.current_user_id is not None:
                self.user_session()

    def user_session(self):
        """per-role menu until logout; role is re-read on every refresh"""
        t = self.terminal
        while self.account_manager.current_user_id is not None:
            role = self.account_manager.current_role
            if role is None:
                t.say("account no longer exists", "red")
                self.account_manager.logout()
                return
            self.user_menu.show(role)
            self.user_menu.dispatch(t.read_choice(), role)

# signal handler
class SignalHandler:
    """custom ctrl+c handler to nag user politely"""
    @staticmethod
    def sigint(_, __):
        """handle ctrl+c"""
        cprint("\nnext time, use the exit option!", "yellow")
        sys.exit(0)

# entry point
def log_level(name: str) -> str:
    """known logging level name, falling back to WARNING"""
    name = name.strip().upper()
    return name if name in logging.getLevelNamesMapping() else "WARNING"

def main(argv: Sequence[str] | None = None) -> int:
    """entrypoint: database path from argv, then STOREFRONT_DB, then the default"""
    args = sys.argv[1:] if argv is None else list(argv)
    logging.basicConfig(
        level=log_level(os.environ.get("STOREFRONT_LOG_LEVEL", "WARNING")),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    path = args[0] if args else os.environ.get("STOREFRONT_DB", DEFAULT_DB_PATH)
    cprint(f"connecting to database {path}...", "cyan")
    try:
        db = DatabaseManager(path)
    except StorageError as e:
        logger.error("startup failed: %s", e)
        cprint(f"error - {e}", "red")
        return 1
    atexit.register(db.close)
    signal.signal(signal.SIGINT, SignalHandler.sigint)

    cprint("""
*******************************************************
              storefront user interface
*******************************************************
    """, "green", attrs=["bold"])

    try:
        Application(db, Terminal()).run()
    except EOFError:
        print()
    cprint("disconnecting from database... done", "green")
    db.close()
    return 0

if __name__ == "__main__":
    sys.exit(main())
