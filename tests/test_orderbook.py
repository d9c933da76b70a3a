from tokenvm.orderbook import ALL_PAIRS, Order, OrderBook
from tokenvm.orders import CreateOrder, pair_id

ALICE = b"\x01" * 32
BOB = b"\x02" * 32
ASSET_A = b"\xaa" * 32
ASSET_B = b"\xbb" * 32
PAIR = pair_id(ASSET_A, ASSET_B)


def _tx(n):
    return bytes([n]) * 32


def _create(in_tick, out_tick, supply=100):
    return CreateOrder(ASSET_A, in_tick, ASSET_B, out_tick, supply)


def test_untracked_pair_is_ignored():
    book = OrderBook([PAIR])
    book.add(_tx(1), ALICE, CreateOrder(ASSET_B, 1, ASSET_A, 1, 10))
    assert book.orders(pair_id(ASSET_B, ASSET_A), 10) == []
    assert book.orders(PAIR, 10) == []


def test_orders_listed_best_rate_first():
    book = OrderBook([PAIR])
    book.add(_tx(1), ALICE, _create(1, 4))
    book.add(_tx(2), BOB, _create(3, 1))
    book.add(_tx(3), ALICE, _create(1, 1))
    listed = book.orders(PAIR, 10)
    assert [o.id for o in listed] == [_tx(2), _tx(3), _tx(1)]
    rates = [o.rate for o in listed]
    assert rates == sorted(rates, reverse=True)
    assert listed[0] == Order(_tx(2), BOB, 3, 1, 100)


def test_limit_caps_result():
    book = OrderBook([PAIR])
    for n in range(1, 6):
        book.add(_tx(n), ALICE, _create(n, 1))
    assert len(book.orders(PAIR, 2)) == 2
    assert [o.id for o in book.orders(PAIR, 2)] == [_tx(5), _tx(4)]
    assert len(book.orders(PAIR, 50)) == 5


def test_remove_and_update_remaining():
    book = OrderBook([PAIR])
    book.add(_tx(1), ALICE, _create(1, 1, supply=40))
    book.add(_tx(2), BOB, _create(2, 1, supply=40))
    book.update_remaining(_tx(1), 7)
    assert {o.id: o.remaining for o in book.orders(PAIR, 10)}[_tx(1)] == 7
    book.remove(_tx(2))
    assert [o.id for o in book.orders(PAIR, 10)] == [_tx(1)]
    book.remove(_tx(9))
    book.update_remaining(_tx(9), 1)
    assert [o.id for o in book.orders(PAIR, 10)] == [_tx(1)]


def test_track_all_creates_books_on_demand():
    book = OrderBook([ALL_PAIRS])
    assert book.track_all
    reverse = CreateOrder(ASSET_B, 2, ASSET_A, 1, 10)
    book.add(_tx(1), ALICE, reverse)
    listed = book.orders(pair_id(ASSET_B, ASSET_A), 10)
    assert [o.id for o in listed] == [_tx(1)]
    assert listed[0].owner == ALICE
    assert book.orders("unknown", 10) == []
    book.remove(_tx(1))
    assert book.orders(pair_id(ASSET_B, ASSET_A), 10) == []