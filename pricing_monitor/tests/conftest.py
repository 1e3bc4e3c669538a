"""
Shared pytest fixtures for pricing monitor tests.
"""

import sys
import json
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest
from prometheus_client import CollectorRegistry

from pricing_monitor.core.config import Config
from pricing_monitor.domain.pricing_models import Sku, UnitPrice
from pricing_monitor.services.metric_sink import PrometheusMetricSink


@pytest.fixture
def config_env():
    """Minimal environment with both providers configured."""
    return {
        'AWS_REGIONS': 'us-east-1,eu-west-1',
        'AWS_INSTANCE_TYPES': 't3.micro,m5.large',
        'GCP_REGIONS': 'us-central1',
        'GCP_INSTANCE_TYPES': 'e2-micro,n2-standard-2',
        'POLL_INTERVAL': '1h',
    }


@pytest.fixture
def config(config_env):
    """Validated configuration for both providers."""
    cfg = Config(config_env)
    cfg.validate()
    return cfg


@pytest.fixture
def registry():
    """Isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def sink(registry):
    """Prometheus sink on an isolated registry."""
    return PrometheusMetricSink(registry)


@pytest.fixture
def aws_price_document():
    """AWS Price List entry for a 2 vCPU / 8 GiB instance at $0.0416/hour."""
    return {
        'product': {
            'productFamily': 'Compute Instance',
            'sku': 'ABCDEFGHIJKLMNOP',
            'attributes': {
                'instanceType': 't3.large',
                'regionCode': 'us-east-1',
                'memory': '8 GiB',
                'vcpu': '2',
                'operatingSystem': 'Linux',
            },
        },
        'terms': {
            'OnDemand': {
                'ABCDEFGHIJKLMNOP.JRTCKXETXF': {
                    'offerTermCode': 'JRTCKXETXF',
                    'priceDimensions': {
                        'ABCDEFGHIJKLMNOP.JRTCKXETXF.6YS6EN2CT7': {
                            'unit': 'Hrs',
                            'description': '$0.0416 per On Demand Linux t3.large Instance Hour',
                            'pricePerUnit': {'USD': '0.0416000000'},
                        }
                    },
                }
            }
        },
    }


@pytest.fixture
def aws_price_document_json(aws_price_document):
    """The same document as the API returns it: a JSON string."""
    return json.dumps(aws_price_document)


def make_sku(description, regions, units=0, nanos=0, sku_id='SKU'):
    """Build a single-tier Sku."""
    return Sku(
        sku_id=sku_id,
        description=description,
        service_regions=tuple(regions),
        pricing_tiers=(UnitPrice(units=units, nanos=nanos),),
    )


def sku_json(description, regions, units='0', nanos=0, sku_id='SKU'):
    """Cloud Billing Catalog JSON for a single-tier SKU."""
    return {
        'skuId': sku_id,
        'description': description,
        'serviceRegions': list(regions),
        'pricingInfo': [{
            'pricingExpression': {
                'usageUnit': 'h',
                'tieredRates': [{
                    'startUsageAmount': 0,
                    'unitPrice': {'currencyCode': 'USD', 'units': units, 'nanos': nanos},
                }],
            }
        }],
    }


@pytest.fixture
def n2_catalog_skus():
    """N2 core at $0.03/hour and memory at $0.004/GB-hour in us-central1."""
    return [
        make_sku('N2 Instance Core running in Americas', ['us-central1'], nanos=30000000, sku_id='CORE'),
        make_sku('N2 Instance Ram running in Americas', ['us-central1'], nanos=4000000, sku_id='RAM'),
    ]
