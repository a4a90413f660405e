from collections import deque

import pytest

from storefront import AccountManager, DatabaseManager, InventoryManager, StoreManager, Terminal


class ScriptedTerminal(Terminal):
    """terminal fed from a list of answers; callables run at prompt time"""
    def __init__(self, *answers):
        self.answers = deque(answers)
        self.prompts = []
        self.output = []

    def feed(self, *answers):
        self.answers.extend(answers)

    def ask(self, prompt, verbatim=False):
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError(f"no scripted answer for prompt {prompt!r}")
        answer = self.answers.popleft()
        if callable(answer):
            answer = answer()
        return answer if verbatim else answer.strip()

    def say(self, text="", color=None, attrs=None):
        self.output.append(text)

    @property
    def text(self):
        return "\n".join(self.output)


class Seeder:
    """insert fixture rows straight into the schema"""
    def __init__(self, db):
        self.db = db

    def user(self, name, latitude=0.0, longitude=0.0, type="customer", password="pw1"):
        return self.db.execute(
            "INSERT INTO users(name, password, latitude, longitude, type) VALUES(?,?,?,?,?);",
            (name, password, latitude, longitude, type)
        ).lastrowid

    def store(self, manager_id, latitude, longitude, name=None):
        return self.db.execute(
            "INSERT INTO store(name, manager_id, latitude, longitude) VALUES(?,?,?,?);",
            (name, manager_id, latitude, longitude)
        ).lastrowid

    def product(self, store_id, name, units, price):
        self.db.execute(
            "INSERT INTO product(store_id, product_name, number_of_units, price_per_unit) VALUES(?,?,?,?);",
            (store_id, name, units, price)
        )

    def warehouse(self, latitude=0.0, longitude=0.0, area="north"):
        return self.db.execute(
            "INSERT INTO warehouse(area, latitude, longitude) VALUES(?,?,?);",
            (area, latitude, longitude)
        ).lastrowid

    def order(self, customer_id, store_id, product_name, units=1, order_time=None):
        if order_time is None:
            sql = "INSERT INTO orders(customer_id, store_id, product_name, units_ordered) VALUES(?,?,?,?);"
            params = (customer_id, store_id, product_name, units)
        else:
            sql = ("INSERT INTO orders(customer_id, store_id, product_name, units_ordered, order_time) "
                   "VALUES(?,?,?,?,?);")
            params = (customer_id, store_id, product_name, units, order_time)
        return self.db.execute(sql, params).lastrowid

    def units(self, store_id, product_name):
        row = self.db.fetch_one(
            "SELECT number_of_units FROM product WHERE store_id=? AND product_name=?;",
            (store_id, product_name)
        )
        return None if row is None else row["number_of_units"]

    def count(self, table):
        return self.db.fetch_one(f"SELECT COUNT(*) AS n FROM {table};")["n"]


@pytest.fixture
def db():
    database = DatabaseManager(":memory:")
    yield database
    database.close()


@pytest.fixture
def terminal():
    return ScriptedTerminal()


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def accounts(db, terminal):
    return AccountManager(db, terminal)


@pytest.fixture
def stores(db, accounts, terminal):
    return StoreManager(db, accounts, terminal)


@pytest.fixture
def inventory(db, accounts, terminal):
    return InventoryManager(db, accounts, terminal)


@pytest.fixture
def terminal_factory():
    return ScriptedTerminal
