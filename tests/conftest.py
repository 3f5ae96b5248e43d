"""Pytest fixtures for controller tests.

Database access is replaced at the ``ConnectionProvider`` seam by
``FakeCluster``, which records connections and DDL. The HTTP surface is
exercised through ``falcon.testing`` against the real application factory.

Examples
--------
Run the suite with:

>>> pytest -v tests
"""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from _api_helpers import API_PASSWORD, API_USER, basic_auth_header
from _postgres_fakes import FakeCluster

from replication_controller.postgres import ClusterClient, HealthProbe
from replication_controller.publications import PublicationReconciler
from replication_controller.users import UserGrantService

if typ.TYPE_CHECKING:
    from falcon import testing


@pytest.fixture
def cluster() -> FakeCluster:
    """Provide an empty recording cluster with ``postgres`` and ``salesdb``."""
    return FakeCluster()


@pytest.fixture
def reconciler(cluster: FakeCluster) -> PublicationReconciler:
    """Build a reconciler over the recording cluster."""
    return PublicationReconciler(cluster)


@pytest.fixture
def grants(cluster: FakeCluster) -> UserGrantService:
    """Build a grant service over the recording cluster."""
    return UserGrantService(cluster)


@pytest.fixture
def cluster_client(cluster: FakeCluster) -> ClusterClient:
    """Build a cluster client whose probe allows one second."""
    return ClusterClient(cluster, HealthProbe(cluster, 1.0))


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Return valid basic credentials for the API."""
    return basic_auth_header(API_USER, API_PASSWORD)


@pytest.fixture
def api_client(
    reconciler: PublicationReconciler,
    grants: UserGrantService,
    cluster_client: ClusterClient,
) -> testing.TestClient:
    """Build a Falcon test client for the controller API."""
    from falcon import testing

    from replication_controller.api import create_app

    app = create_app(
        reconciler,
        grants,
        cluster_client,
        api_user=API_USER,
        api_password=API_PASSWORD,
    )
    return testing.TestClient(app)


@pytest.fixture
def _function_scoped_runner() -> typ.Iterator[asyncio.Runner]:
    """Provide a function-scoped asyncio.Runner for sync BDD steps."""
    with asyncio.Runner() as runner:
        yield runner
