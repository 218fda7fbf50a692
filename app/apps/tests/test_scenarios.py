"""End to end scenarios over the HTTP surface."""

import asyncio

import pytest
from fastapi.testclient import TestClient

TENANTS = ("u1", "u2", "u3")

FIXTURES: dict[str, list[dict]] = {
    "/cluster": [{"name": "c1"}, {"name": "c2"}, {"name": "c3"}],
    "/v1_opa_framework": [{"name": "fw", "controlsIDs": ["C-0001"]}],
    "/v1_posture_exception_policy": [
        {"name": "pep", "posturePolicies": [{"controlID": "C-0001"}]}
    ],
    "/v1_repository": [{"name": "repo", "repoName": "my-repo"}],
    "/registryCronJob": [
        {"name": "job", "clusterName": "c1", "registryName": "reg", "cronTabSchedule": "* * * * *"}
    ],
}


def _post(client: TestClient, path: str, body: object) -> object:
    response = client.post(path, json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestTenantIsolation:
    """Tenants share collections but never see each other's documents."""

    @pytest.fixture
    def clients(self, client_for) -> dict[str, TestClient]:
        clients = {}
        for tenant in TENANTS:
            clients[tenant] = client_for(tenant)
            client_for(None).post("/customer_tenant", json={"guid": tenant, "name": tenant})
            for path, docs in FIXTURES.items():
                _post(clients[tenant], path, docs)
        return clients

    def test_admin_sees_all_tenants(self, clients, admin_client: TestClient) -> None:
        """Test the admin search spans every tenant."""
        response = admin_client.post("/v1_admin/cluster/query", json={})

        assert response.status_code == 200
        assert response.json()["total"]["value"] == 9
        assert len(response.json()["response"]) == 9

    def test_purge_tenants(self, clients, admin_client: TestClient) -> None:
        """Test that purged tenants lose every document."""
        per_tenant = 1 + sum(len(docs) for docs in FIXTURES.values())

        response = admin_client.delete(
            "/v1_admin/customers", params=[("customers", "u2"), ("customers", "u3")]
        )

        assert response.json() == {"deleted": 2 * per_tenant}
        for path, docs in FIXTURES.items():
            assert len(clients["u1"].get(path).json()) == len(docs)
            assert clients["u2"].get(path).json() == []
            assert clients["u3"].get(path).json() == []
        assert clients["u1"].get("/customer").json()["guid"] == "u1"
        assert clients["u2"].get("/customer").status_code == 404
        assert clients["u3"].get("/customer").status_code == 404


class TestSearchOperators:
    """Search operators applied through the v2 list endpoints."""

    def test_like_ignore_case(self, client: TestClient) -> None:
        """Test case insensitive substring match."""
        _post(
            client,
            "/cluster",
            [{"name": "cluster-a"}, {"name": "bez"}, {"name": "moshe-super-cluster"}],
        )

        response = client.post(
            "/cluster/query", json={"innerFilters": [{"name": "BeZ|like&ignorecase"}]}
        )

        assert response.json()["total"]["value"] == 1
        assert [doc["name"] for doc in response.json()["response"]] == ["bez"]

    def test_admin_query_without_public_search(
        self, client_for, admin_client: TestClient
    ) -> None:
        """Test admin search and delete on a collection with no public search routes."""
        job = FIXTURES["/registryCronJob"][0]
        _post(client_for("u1"), "/registryCronJob", job)
        _post(client_for("u2"), "/registryCronJob", job)
        _post(client_for("u2"), "/registryCronJob", {**job, "name": "other"})

        searched = admin_client.post("/v1_admin/registryCronJob/query", json={})
        deleted = admin_client.request(
            "DELETE",
            "/v1_admin/registryCronJob/query",
            json={"innerFilters": [{"name": "job"}]},
        )
        remaining = client_for("u2").get("/registryCronJob").json()

        assert searched.status_code == 200
        assert searched.json()["total"]["value"] == 3
        assert deleted.status_code == 200
        assert deleted.json() == {"deletedCount": 2}
        assert [doc["name"] for doc in remaining] == ["other"]

    def test_range_delete_on_searchable_collection(
        self, mongo, admin_client: TestClient
    ) -> None:
        """Test that the admin delete removes exactly the documents in range."""
        months = [f"2023-{month:02d}-15T00:00:00Z" for month in range(1, 13)]
        docs = [
            {"_id": f"w{i}", "guid": f"w{i}", "name": f"wf{i}", "customers": [f"u{i % 3}"], "updatedTime": ts}
            for i, ts in enumerate(months)
        ]
        asyncio.run(mongo["workflows"].insert_many(docs))

        response = admin_client.request(
            "DELETE",
            "/v1_admin/workflows/query",
            json={"innerFilters": [{"updatedTime": f"{months[3]}&{months[5]}|range"}]},
        )
        remaining = asyncio.run(mongo["workflows"].count_documents({}))

        assert response.json() == {"deletedCount": 3}
        assert remaining == 9


class TestArrayQueries:
    """Element match and unique values over arrays of objects."""

    @pytest.fixture
    def references(self, client: TestClient) -> list[dict]:
        return _post(
            client,
            "/integrationReference",
            [
                {
                    "name": "both-on-one-element",
                    "relatedObjects": [
                        {"cveID": "cve1", "severity": "critical", "component": "component1"},
                        {"cveID": "cve2", "severity": "high", "component": "component2"},
                        {"cveID": "cve3", "severity": "low", "component": "component1"},
                    ],
                },
                {
                    "name": "split-over-elements",
                    "relatedObjects": [
                        {"cveID": "cve1", "severity": "low", "component": "component2"},
                        {"cveID": "cve4", "severity": "critical", "component": "component2"},
                        {"cveID": "cve5", "severity": "high", "component": "component1"},
                        {"cveID": "cve6", "severity": "critical", "component": "component3"},
                    ],
                },
            ],
        )

    def test_element_match(self, client: TestClient, references) -> None:
        """Test that both conditions must hold on the same element."""
        response = client.post(
            "/integrationReference/query",
            json={
                "innerFilters": [
                    {
                        "relatedObjects.cveID|elemMatch": "cve1",
                        "relatedObjects.severity|elemMatch": "critical",
                    }
                ]
            },
        )

        assert [doc["name"] for doc in response.json()["response"]] == [
            "both-on-one-element"
        ]

    def test_without_element_match(self, client: TestClient, references) -> None:
        """Test that plain conditions may hold on different elements."""
        response = client.post(
            "/integrationReference/query",
            json={
                "innerFilters": [
                    {"relatedObjects.cveID": "cve1", "relatedObjects.severity": "critical"}
                ]
            },
        )

        assert response.json()["total"]["value"] == 2

    def test_composite_unique_values(self, client: TestClient, references) -> None:
        """Test pipe joined combinations present on single elements."""
        field = "relatedObjects.severity|relatedObjects.component"
        response = client.post(
            "/integrationReference/uniqueValues",
            json={
                "fields": {field: ""},
                "innerFilters": [
                    {
                        "relatedObjects.severity": "critical,high",
                        "relatedObjects.component": "component1,component2",
                    }
                ],
            },
        )

        assert response.status_code == 200
        assert sorted(response.json()["fields"][field]) == [
            "critical|component1",
            "critical|component2",
            "high|component1",
            "high|component2",
        ]

    def test_unique_values_count_only(self, client: TestClient, references) -> None:
        """Test that a zero page size returns no values."""
        field = "relatedObjects.severity"
        response = client.post(
            "/integrationReference/uniqueValues",
            json={"fields": {field: ""}, "pageSize": 0},
        )

        assert response.status_code == 200
        assert response.json() == {"fields": {field: []}, "fieldsCount": {field: []}}


class TestNestedPagination:
    """Alerts paged inside their incident."""

    def test_alert_pages(self, client: TestClient, client_for) -> None:
        """Test one alert per page in ascending timestamp order."""
        incident = _post(
            client,
            "/runtimeIncident",
            {
                "name": "incident",
                "severity": "high",
                "relatedAlerts": [
                    {"alertName": "second", "timestamp": "2023-01-01T00:00:02Z"},
                    {"alertName": "first", "timestamp": "2023-01-01T00:00:01Z"},
                    {"alertName": "third", "timestamp": "2023-01-01T00:00:03Z"},
                ],
            },
        )
        path = f"/runtimeAlert/{incident['guid']}/query"

        pages = [
            client.post(
                path, json={"pageSize": 1, "pageNum": page, "orderBy": "timestamp:asc"}
            ).json()
            for page in range(3)
        ]
        foreign = client_for("u2").post(path, json={"pageSize": 1}).json()

        assert [page["total"]["value"] for page in pages] == [3, 3, 3]
        assert [[alert["alertName"] for alert in page["response"]] for page in pages] == [
            ["first"],
            ["second"],
            ["third"],
        ]
        assert foreign["total"]["value"] == 0

    def test_incident_hides_alerts(self, client: TestClient) -> None:
        """Test that incident reads drop the alerts array."""
        incident = _post(
            client,
            "/runtimeIncident",
            {"name": "i", "relatedAlerts": [{"alertName": "a", "timestamp": "2023-01-01T00:00:00Z"}]},
        )

        fetched = client.get(f"/runtimeIncident/{incident['guid']}").json()
        searched = client.post("/runtimeIncident/query", json={}).json()

        assert "relatedAlerts" not in fetched
        assert "creationDayDate" not in fetched
        assert "relatedAlerts" not in searched["response"][0]
