"""Tests for cart storage backends"""
import json
import pytest
from decimal import Decimal
from shopcart.cart import Cart, CartKey, DatabaseStorage, Item, RedisStorage, SessionStorage


def make_rows(*specs):
    """Build an ordered row set from (raw_id, qty, price, extra) tuples"""
    rows = {}
    for raw_id, qty, price, extra in specs:
        rows[raw_id] = Item(
            raw_id=raw_id,
            product_id=f"product-{raw_id}",
            name=f"Product {raw_id}",
            qty=qty,
            price=price,
            attributes=dict(extra),
        )
    return rows


# ==================== SESSION ====================


@pytest.mark.asyncio
async def test_session_set_get(session):
    """Test session storage round-trips rows in order"""
    storage = SessionStorage(session)
    rows = make_rows(("b", 1, 2, {}), ("a", 2, "3.50", {"color": "red"}))

    await storage.set("cart.default", rows)
    loaded = await storage.get(CartKey())

    assert list(loaded) == ["b", "a"]
    assert loaded == rows
    assert session["cart.default"][1]["color"] == "red"


@pytest.mark.asyncio
async def test_session_stores_json_safe_rows(session):
    """Test stored rows survive a JSON cookie round-trip"""
    storage = SessionStorage(session)
    await storage.set(CartKey(), make_rows(("a", 2, "3.50", {})))

    json.dumps(session)


@pytest.mark.asyncio
async def test_session_get_missing(session):
    """Test unknown carts are empty"""
    assert await SessionStorage(session).get("cart.nope") == {}


@pytest.mark.asyncio
async def test_session_set_none_and_forget(session):
    """Test clearing a session cart"""
    storage = SessionStorage(session)
    await storage.set("cart.default", make_rows(("a", 1, 1, {})))
    await storage.set("cart.default", None)

    assert session == {}

    await storage.forget("cart.default")
    assert session == {}


# ==================== REDIS ====================


@pytest.mark.asyncio
async def test_redis_set_get(mock_redis):
    """Test Redis storage writes JSON with TTL"""
    storage = RedisStorage(redis=mock_redis, ttl=60)
    rows = make_rows(("a", 2, "3.50", {"size": "M"}))

    await storage.set(CartKey.for_actor("api", 1), rows)

    mock_redis.set.assert_awaited_once()
    args, kwargs = mock_redis.set.await_args
    assert args[0] == "cart:cart.api.1"
    assert kwargs["ex"] == 60
    assert await storage.get(CartKey.for_actor("api", 1)) == rows


@pytest.mark.asyncio
async def test_redis_get_missing(mock_redis):
    """Test missing Redis cart is empty"""
    assert await RedisStorage(redis=mock_redis).get("cart.default") == {}


@pytest.mark.asyncio
async def test_redis_corrupted_data_cleared(mock_redis):
    """Test corrupted JSON is deleted and read as empty"""
    mock_redis.store["cart:cart.default"] = "{not json"
    storage = RedisStorage(redis=mock_redis)

    assert await storage.get("cart.default") == {}
    assert "cart:cart.default" not in mock_redis.store


@pytest.mark.asyncio
async def test_redis_set_none_deletes(mock_redis):
    """Test set(None) forgets the cart"""
    storage = RedisStorage(redis=mock_redis)
    await storage.set("cart.default", make_rows(("a", 1, 1, {})))
    await storage.set("cart.default", None)

    assert mock_redis.store == {}


@pytest.mark.asyncio
async def test_redis_write_error_propagates(mock_redis):
    """Test Redis failures reach the caller"""
    mock_redis.set.side_effect = ConnectionError("upstash unreachable")
    storage = RedisStorage(redis=mock_redis)

    with pytest.raises(ConnectionError):
        await storage.set("cart.default", make_rows(("a", 1, 1, {})))


# ==================== DATABASE ====================


@pytest.mark.asyncio
async def test_database_insert_records(fake_supabase):
    """Test rows become records with columns, attributes blob and scope"""
    storage = DatabaseStorage(client=fake_supabase)
    key = CartKey.for_actor("api", 7)

    await storage.set(key, make_rows(("a", 2, "3.50", {"color": "red"})))

    [record] = fake_supabase.tables["shopping_cart"]
    assert record["key"] == "cart.api.7"
    assert record["__raw_id"] == "a"
    assert record["guard"] == "api"
    assert record["user_id"] == "7"
    assert record["qty"] == 2
    assert record["price"] == "3.50"
    assert record["total"] == "7.00"
    assert json.loads(record["attributes"]) == {"color": "red"}


@pytest.mark.asyncio
async def test_database_get_restores_rows(fake_supabase):
    """Test get decodes the attributes blob back into rows"""
    storage = DatabaseStorage(client=fake_supabase)
    rows = make_rows(("a", 2, "3.50", {"color": "red"}), ("b", 1, 10, {}))

    await storage.set("cart.default", rows)
    loaded = await storage.get("cart.default")

    assert list(loaded) == ["a", "b"]
    assert loaded["a"].color == "red"
    assert loaded["a"].total == Decimal("7.00")
    assert loaded == rows


@pytest.mark.asyncio
async def test_database_set_deletes_absent_rows(fake_supabase):
    """Test rows missing from the new set are deleted"""
    storage = DatabaseStorage(client=fake_supabase)
    await storage.set("cart.default", make_rows(("a", 1, 1, {}), ("b", 1, 1, {})))

    await storage.set("cart.default", make_rows(("b", 1, 1, {})))

    assert list(await storage.get("cart.default")) == ["b"]
    assert [r["__raw_id"] for r in fake_supabase.tables["shopping_cart"]] == ["b"]


@pytest.mark.asyncio
async def test_database_set_updates_existing(fake_supabase):
    """Test existing (key, raw_id) records are updated, not duplicated"""
    storage = DatabaseStorage(client=fake_supabase)
    await storage.set("cart.default", make_rows(("a", 1, 5, {})))
    first_id = fake_supabase.tables["shopping_cart"][0]["id"]

    await storage.set("cart.default", make_rows(("a", 3, 5, {"note": "gift"}), ("c", 1, 2, {})))

    records = fake_supabase.tables["shopping_cart"]
    assert len(records) == 2
    assert records[0]["id"] == first_id
    assert records[0]["qty"] == 3
    assert records[0]["total"] == "15"
    assert json.loads(records[0]["attributes"]) == {"note": "gift"}
    assert ("shopping_cart", "update") in fake_supabase.calls


@pytest.mark.asyncio
async def test_database_keys_are_isolated(fake_supabase):
    """Test reconciliation only touches the cart's own key"""
    storage = DatabaseStorage(client=fake_supabase)
    await storage.set(CartKey.for_actor("api", 1), make_rows(("a", 1, 1, {})))
    await storage.set(CartKey.for_actor("api", 2), make_rows(("a", 2, 1, {})))

    await storage.set(CartKey.for_actor("api", 1), {})

    assert await storage.get(CartKey.for_actor("api", 1)) == {}
    assert (await storage.get(CartKey.for_actor("api", 2)))["a"].qty == 2


@pytest.mark.asyncio
async def test_database_set_none_forgets(fake_supabase):
    """Test set(None) and forget clear every record for the key"""
    storage = DatabaseStorage(client=fake_supabase)
    await storage.set("cart.default", make_rows(("a", 1, 1, {}), ("b", 1, 1, {})))

    await storage.set("cart.default", None)

    assert fake_supabase.tables["shopping_cart"] == []


@pytest.mark.asyncio
async def test_database_guard_with_dots(fake_supabase):
    """Test guard and user id are stored as given, never split from the name"""
    storage = DatabaseStorage(client=fake_supabase)

    await storage.set(CartKey.for_actor("admin.api", 9), make_rows(("a", 1, 1, {})))

    [record] = fake_supabase.tables["shopping_cart"]
    assert record["guard"] == "admin.api"
    assert record["user_id"] == "9"
    assert record["key"] == "cart.admin.api.9"


@pytest.mark.asyncio
async def test_database_plain_key_has_no_scope(fake_supabase):
    """Test string keys carry no guard/user"""
    storage = DatabaseStorage(client=fake_supabase)

    await storage.set("cart.api.1", make_rows(("a", 1, 1, {})))

    [record] = fake_supabase.tables["shopping_cart"]
    assert record["guard"] is None
    assert record["user_id"] is None


@pytest.mark.asyncio
async def test_database_backed_cart_scenario(fake_supabase):
    """Test the cart end to end over table storage"""
    cart = Cart(DatabaseStorage(client=fake_supabase), key=CartKey.for_actor("web", 5))

    await cart.add("A", "Shirt", 1, 5)
    item = await cart.add("A", "Shirt", 2, 5)
    other = await cart.add("B", "Hat", 1, 10, attributes={"color": "red"})

    reloaded = Cart(DatabaseStorage(client=fake_supabase), key=CartKey.for_actor("web", 5))
    assert await reloaded.count() == 4
    assert (await reloaded.get(item.raw_id)).total == 15
    assert list(await reloaded.search({"color": "red"})) == [other.raw_id]

    await reloaded.remove(item.raw_id)
    await reloaded.destroy()
    assert fake_supabase.tables["shopping_cart"] == []
