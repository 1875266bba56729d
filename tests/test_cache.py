from concurrent.futures import ThreadPoolExecutor

from chainport.chains.cache import ChainCache
from conftest import make_chain


def test_get_set_delete():
    cache = ChainCache()
    chain = make_chain(("one", ""))

    assert cache.get(chain.id) is None
    cache.set(chain.id, chain)
    assert cache.get(chain.id) == chain
    assert chain.id in cache
    assert cache.keys() == [chain.id]

    assert cache.delete(chain.id) is True
    assert cache.delete(chain.id) is False
    assert len(cache) == 0


def test_find_containing():
    cache = ChainCache()
    chain = make_chain(("one", ""), chain_id="1700000000000-qwerty12")
    cache.set(chain.id, chain)

    assert cache.find_containing("erty") == chain
    assert cache.find_containing("nomatch") is None


def test_concurrent_writers():
    cache = ChainCache()

    def write(i):
        chain_id = f"17000000000{i:02d}-abcdefgh"
        cache.set(chain_id, make_chain(("one", ""), chain_id=chain_id))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(write, range(50)))

    assert len(cache) == 50
