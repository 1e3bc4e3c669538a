"""
Tests for GCP billing catalog SKU matching.
"""

import random

import pytest

from pricing_monitor.domain.pricing_models import PriceDimension, Sku
from pricing_monitor.pricing.gcp_sku_matcher import (
    FAMILY_PHRASES,
    SkuNotFoundError,
    family_phrases,
    find_unit_price,
    match_sku,
    sku_matches,
)
from conftest import make_sku, sku_json


class RecordingPages:
    """Forward-only async page source that records how far it was consumed."""

    def __init__(self, pages):
        self._pages = list(pages)
        self.consumed = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.consumed >= len(self._pages):
            raise StopAsyncIteration
        page = self._pages[self.consumed]
        self.consumed += 1
        return page

    async def aclose(self):
        self.closed = True


def test_core_sku_matches_core_dimension_only():
    sku = make_sku('N2 Instance Core running in Americas', ['us-central1'], nanos=1)
    assert sku_matches(sku, 'us-central1', 'n2', PriceDimension.CORE)
    assert not sku_matches(sku, 'us-central1', 'n2', PriceDimension.MEMORY)


def test_memory_keywords():
    ram = make_sku('E2 Instance Ram running in Belgium', ['europe-west1'])
    memory = make_sku('Memory-optimized Instance Memory running in Belgium', ['europe-west1'])
    assert sku_matches(ram, 'europe-west1', 'e2', PriceDimension.MEMORY)
    assert sku_matches(memory, 'europe-west1', 'm1', PriceDimension.MEMORY) is False
    assert sku_matches(memory, 'europe-west1', 'memory-optimized', PriceDimension.MEMORY)


def test_vcpu_keyword_counts_as_core():
    sku = make_sku('C3 Instance vCPU running in Iowa', ['us-central1'])
    assert sku_matches(sku, 'us-central1', 'c3', PriceDimension.CORE)


def test_family_phrase_table():
    assert family_phrases('n1') == ('n1 predefined', 'n1 instance')
    assert family_phrases('n2d') == FAMILY_PHRASES['n2']
    assert family_phrases('t2d') == ('t2d',)


def test_n1_predefined_description_matches():
    sku = make_sku('N1 Predefined Instance Core running in Americas', ['us-central1'])
    assert sku_matches(sku, 'us-central1', 'n1', PriceDimension.CORE)


def test_family_phrase_must_be_present():
    sku = make_sku('E2 Instance Core running in Americas', ['us-central1'])
    assert not sku_matches(sku, 'us-central1', 'n2', PriceDimension.CORE)


def test_unlisted_family_uses_substring():
    sku = make_sku('T2D AMD Instance Core running in Americas', ['us-central1'])
    assert sku_matches(sku, 'us-central1', 't2d', PriceDimension.CORE)


def test_region_must_be_listed():
    sku = make_sku('N2 Instance Core running in Americas', ['us-east1', 'us-west1'])
    assert not sku_matches(sku, 'us-central1', 'n2', PriceDimension.CORE)


def test_first_match_in_order_wins():
    first = make_sku('N2 Instance Core running in Americas', ['us-central1'], nanos=30000000, sku_id='A')
    second = make_sku('N2 Instance Core running in Americas', ['us-central1'], nanos=50000000, sku_id='B')
    assert match_sku([first, second], 'us-central1', 'n2', PriceDimension.CORE).sku_id == 'A'


def test_sku_without_tiers_is_skipped():
    untiered = Sku(sku_id='EMPTY', description='N2 Instance Core', service_regions=('us-central1',))
    tiered = make_sku('N2 Instance Core', ['us-central1'], nanos=1, sku_id='TIERED')
    assert match_sku([untiered, tiered], 'us-central1', 'n2', PriceDimension.CORE).sku_id == 'TIERED'


def test_from_api_decodes_string_units():
    sku = Sku.from_api(sku_json('N2 Instance Core running in Americas', ['us-central1'], units='1', nanos=500000000))

    assert sku.service_regions == ('us-central1',)
    assert len(sku.pricing_tiers) == 1
    assert sku.pricing_tiers[0].units == 1
    assert sku.pricing_tiers[0].amount == pytest.approx(1.5)


@pytest.mark.parametrize('payload', [
    {},
    {'pricingInfo': []},
    {'pricingInfo': [{}]},
    {'pricingInfo': [{'pricingExpression': {'tieredRates': []}}]},
])
def test_from_api_without_rates_has_no_tiers(payload):
    data = {'skuId': 'BARE', 'description': 'N2 Instance Core', 'serviceRegions': ['us-central1']}
    data.update(payload)

    sku = Sku.from_api(data)

    assert sku.pricing_tiers == ()
    assert match_sku([sku], 'us-central1', 'n2', PriceDimension.CORE) is None


@pytest.mark.parametrize('seed', range(20))
def test_match_region_always_in_service_regions(seed):
    """Whatever the catalog holds, a returned SKU covers the requested region."""
    rng = random.Random(seed)
    regions = ['us-central1', 'us-east1', 'europe-west1', 'asia-east1']
    descriptions = [
        'N2 Instance Core running in Americas',
        'N2 Instance Ram running in Americas',
        'E2 Instance Core running in Europe',
        'Network egress',
    ]
    catalog = [
        make_sku(rng.choice(descriptions), rng.sample(regions, rng.randint(0, 3)), nanos=rng.randint(1, 10 ** 8))
        for _ in range(30)
    ]
    for region in regions:
        for dimension in PriceDimension:
            match = match_sku(catalog, region, 'n2', dimension)
            if match is not None:
                assert region in match.service_regions


@pytest.mark.asyncio
async def test_find_unit_price_reconstructs_fixed_point():
    pages = RecordingPages([[make_sku('N2 Instance Core', ['us-central1'], units=1, nanos=250000000)]])
    price = await find_unit_price(pages, 'us-central1', 'n2', PriceDimension.CORE)
    assert price == pytest.approx(1.25)


@pytest.mark.asyncio
async def test_find_unit_price_stops_at_first_matching_page(n2_catalog_skus):
    pages = RecordingPages([
        [make_sku('E2 Instance Core', ['us-central1'], nanos=1)],
        n2_catalog_skus,
        [make_sku('N2 Instance Core', ['us-central1'], nanos=99)],
    ])

    price = await find_unit_price(pages, 'us-central1', 'n2', PriceDimension.MEMORY)

    assert price == pytest.approx(0.004)
    assert pages.consumed == 2
    assert pages.closed


@pytest.mark.asyncio
async def test_exhausted_catalog_raises_not_found():
    pages = RecordingPages([[make_sku('N2 Instance Core', ['us-east1'], nanos=1)], []])

    with pytest.raises(SkuNotFoundError) as exc_info:
        await find_unit_price(pages, 'us-central1', 'n2', PriceDimension.CORE)

    assert exc_info.value.dimension == PriceDimension.CORE
    assert 'us-central1' in str(exc_info.value)
    assert pages.consumed == 2


@pytest.mark.asyncio
async def test_zero_priced_match_is_not_found():
    pages = RecordingPages([[make_sku('N2 Instance Ram', ['us-central1'])]])

    with pytest.raises(SkuNotFoundError):
        await find_unit_price(pages, 'us-central1', 'n2', PriceDimension.MEMORY)
