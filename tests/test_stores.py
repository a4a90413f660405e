import pytest

from storefront import NEARBY_RADIUS, OutOfStockError


@pytest.fixture
def customer(accounts, seed):
    accounts.current_user_id = seed.user("alice", latitude=0.0, longitude=0.0)
    return accounts.current_user_id


@pytest.fixture
def manager(seed):
    return seed.user("mgr", latitude=0.0, longitude=0.0, type="manager")


@pytest.fixture
def shop(seed, manager):
    store_id = seed.store(manager, 3.0, 4.0)
    seed.product(store_id, "widget", 10, 2.5)
    seed.product(store_id, "gadget", 4, 9.99)
    return store_id


def test_radius_lists_exactly_the_nearby_stores(stores, seed, customer, manager):
    coordinates = [(10.0, 10.0), (25.0, 25.0), (30.0, 0.0), (-20.0, -5.0), (0.0, 30.01)]
    ids = [seed.store(manager, lat, lon) for lat, lon in coordinates]
    nearby = dict(stores.stores_within_radius(customer))
    assert set(nearby) == {ids[0], ids[2], ids[3]}
    assert nearby[ids[2]] == NEARBY_RADIUS  # the boundary is inclusive


def test_radius_set_does_not_depend_on_insertion_order(stores, seed, customer, manager):
    coordinates = [(5.0, 5.0), (40.0, 0.0), (-1.0, 29.0)]
    forward = [seed.store(manager, lat, lon) for lat, lon in coordinates]
    backward = [seed.store(manager, lat, lon) for lat, lon in reversed(coordinates)]
    found = {store_id for store_id, _ in stores.stores_within_radius(customer)}
    expected_forward = {forward[0], forward[2]}
    expected_backward = {backward[0], backward[2]}
    assert found == expected_forward | expected_backward


def test_radius_list_keeps_storage_order_not_distance_order(stores, seed, customer, manager):
    far = seed.store(manager, 20.0, 0.0)
    near = seed.store(manager, 5.0, 0.0)
    listed = stores.stores_within_radius(customer)
    assert [store_id for store_id, _ in listed] == [far, near]
    assert [d for _, d in listed] == [20.0, 5.0]


def test_view_stores_prints_ids_and_degree_distances(stores, terminal, seed, customer, manager):
    store_id = seed.store(manager, 3.0, 4.0)
    stores.view_stores()
    assert terminal.output == ["store id\tdistance (deg)", f"{store_id}\t5.00"]


def test_view_stores_with_nothing_nearby(stores, terminal, seed, customer, manager):
    seed.store(manager, 80.0, 80.0)
    stores.view_stores()
    assert terminal.output == ["no stores found within 30 of your location"]


def test_view_products_validates_store(stores, terminal, shop):
    terminal.feed("abc", "999", str(shop))
    stores.view_products()
    assert "no store with id 999" in terminal.text
    assert "product_name\tnumber_of_units\tprice_per_unit" in terminal.output
    assert "widget\t10\t2.5" in terminal.output


def test_view_products_reprompts_for_an_id_beyond_storage_range(stores, terminal, shop):
    terminal.feed("99999999999999999999", str(shop))
    stores.view_products()
    assert f"invalid input, this field must be at most {2**63 - 1}" in terminal.output
    assert "widget\t10\t2.5" in terminal.output


def test_order_for_exactly_available_units_empties_stock(stores, terminal, seed, customer, shop):
    terminal.feed(str(shop), "widget", "10")
    stores.place_order()
    assert seed.units(shop, "widget") == 0
    order = stores.db.fetch_one("SELECT * FROM orders;")
    assert (order["customer_id"], order["store_id"], order["product_name"], order["units_ordered"]) == (
        customer, shop, "widget", 10
    )
    assert order["order_time"]
    assert "placed for 10 units of widget" in terminal.text


def test_order_above_available_units_is_rejected_before_any_write(stores, terminal, seed, customer, shop):
    terminal.feed(str(shop), "widget", "11", "")
    stores.place_order()
    assert seed.units(shop, "widget") == 10
    assert seed.count("orders") == 0
    assert "cannot order more units than the store has available" in terminal.text


def test_order_of_zero_units_is_rejected(stores, terminal, seed, customer, shop):
    terminal.feed(str(shop), "gadget", "0", "-3", "2")
    stores.place_order()
    assert seed.units(shop, "gadget") == 2
    assert "at least 1 unit" in terminal.text
    assert "positive number" in terminal.text


def test_order_store_must_come_from_nearby_list(stores, terminal, seed, customer, manager, shop):
    far = seed.store(manager, 60.0, 60.0)
    seed.product(far, "widget", 5, 1.0)
    terminal.feed(str(far), "999", "")
    stores.place_order()
    assert terminal.text.count("list of nearby stores") == 2
    assert seed.count("orders") == 0
    assert seed.units(far, "widget") == 5


def test_order_product_must_exist_at_store(stores, terminal, seed, customer, manager, shop):
    elsewhere = seed.store(manager, 1.0, 1.0)
    seed.product(elsewhere, "gizmo", 3, 1.0)
    terminal.feed(str(shop), "gizmo", "")
    stores.place_order()
    assert f"store {shop} does not carry a product named 'gizmo'" in terminal.text
    assert seed.count("orders") == 0


def test_order_without_nearby_stores_asks_nothing(stores, terminal, seed, customer, manager):
    seed.store(manager, 50.0, 50.0)
    stores.place_order()
    assert terminal.prompts == []


def test_stock_drop_during_order_rolls_back_the_order(stores, terminal, seed, customer, shop):
    def competing_sale():
        stores.db.execute(
            "UPDATE product SET number_of_units = 2 WHERE store_id=? AND product_name='widget';", (shop,)
        )
        return "5"

    terminal.feed(str(shop), "widget", competing_sale)
    stores.place_order()
    assert seed.count("orders") == 0
    assert seed.units(shop, "widget") == 2
    assert "order not placed" in terminal.text


def test_submit_order_is_all_or_nothing(stores, seed, customer, shop):
    with pytest.raises(OutOfStockError):
        stores.submit_order(customer, shop, "gadget", 5)
    assert seed.count("orders") == 0
    assert seed.units(shop, "gadget") == 4
    stores.submit_order(customer, shop, "gadget", 4)
    assert seed.count("orders") == 1
    assert seed.units(shop, "gadget") == 0


def test_recent_orders_shows_latest_five_for_caller_only(stores, terminal, seed, customer, shop):
    other = seed.user("bob")
    for day in range(1, 7):
        seed.order(customer, shop, "widget", units=day, order_time=f"2024-01-0{day} 10:00:00")
    seed.order(other, shop, "gadget", order_time="2024-02-01 10:00:00")
    stores.view_recent_orders()
    rows = terminal.output[1:]
    assert terminal.output[0] == "store_id\tproduct_name\tunits_ordered\torder_time"
    assert len(rows) == 5
    assert rows[0].endswith("2024-01-06 10:00:00")
    assert rows[-1].endswith("2024-01-02 10:00:00")
    assert not any("gadget" in row for row in rows)
