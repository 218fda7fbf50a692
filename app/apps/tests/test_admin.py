"""HTTP tests of the admin routes."""

from fastapi.testclient import TestClient


def _post(client: TestClient, path: str, body: object) -> object:
    response = client.post(path, json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestAdminAccess:
    """Test cases for admin gating."""

    def test_not_admin(self, client: TestClient) -> None:
        """Test that regular tenants are rejected."""
        response = client.get("/v1_admin/customers", params={"name": "x"})

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized - not an admin user"}

    def test_anonymous(self, client_for) -> None:
        """Test that admin routes need a tenant too."""
        response = client_for(None).post("/v1_admin/cluster/query", json={})

        assert response.json() == {"error": "Unauthorized"}


class TestCustomers:
    """Test cases for tenant lookup and purge."""

    def test_requires_params(self, admin_client: TestClient) -> None:
        """Test that listing every tenant is refused."""
        response = admin_client.get("/v1_admin/customers")

        assert response.status_code == 400
        assert response.json() == {"error": "must provide query params"}

    def test_find_by_field(self, client_for, admin_client: TestClient) -> None:
        """Test tenant lookup with projection."""
        for guid, license_type in (("t1", "free"), ("t2", "paid"), ("t3", "free")):
            client_for(None).post(
                "/customer_tenant",
                json={"guid": guid, "name": guid, "licenseType": license_type},
            )

        response = admin_client.get(
            "/v1_admin/customers",
            params={"licenseType": "free", "projection": "guid,name"},
        )

        assert response.status_code == 200
        assert sorted(doc["guid"] for doc in response.json()) == ["t1", "t3"]
        assert all("licenseType" not in doc for doc in response.json())

    def test_delete_requires_customers(self, admin_client: TestClient) -> None:
        """Test the purge without tenants."""
        response = admin_client.delete("/v1_admin/customers")

        assert response.status_code == 400
        assert response.json() == {"error": "customers query param is required"}


class TestActiveCustomers:
    """Test cases for tenants with recent scans."""

    def test_date_params(self, admin_client: TestClient) -> None:
        """Test missing and malformed dates."""
        missing = admin_client.get("/v1_admin/activeCustomers")
        malformed = admin_client.get(
            "/v1_admin/activeCustomers",
            params={"fromDate": "yesterday", "toDate": "2023-01-01T00:00:00Z"},
        )
        bad_limit = admin_client.get("/v1_admin/activeCustomers", params={"limit": "x"})

        assert missing.json() == {"error": "fromDate query param is required"}
        assert malformed.json() == {"error": "fromDate must be in RFC3339 format"}
        assert bad_limit.json() == {"error": "limit must be a number"}

    def test_active_customers(self, client_for, admin_client: TestClient) -> None:
        """Test that only tenants with a scan in the window are listed."""
        for tenant, report_date in (
            ("t1", "2023-01-10T00:00:00Z"),
            ("t2", "2023-03-10T00:00:00Z"),
            ("t3", "2023-01-20T00:00:00Z"),
        ):
            client_for(None).post("/customer_tenant", json={"guid": tenant, "name": tenant})
            _post(client_for(tenant), "/cluster", {"name": "c", "lastReportDate": report_date})

        response = admin_client.get(
            "/v1_admin/activeCustomers",
            params={
                "fromDate": "2023-01-01T00:00:00Z",
                "toDate": "2023-01-31T00:00:00Z",
                "limit": "1",
            },
        )

        assert response.status_code == 200
        assert response.json()["metadata"] == {"total": 2, "limit": 1, "nextSkip": 1}
        assert [doc["guid"] for doc in response.json()["results"]] == ["t1"]


class TestCollectionQueries:
    """Test cases for admin queries over public collection paths."""

    def test_unknown_path(self, admin_client: TestClient) -> None:
        """Test paths that serve no collection."""
        response = admin_client.post("/v1_admin/nope/query", json={})

        assert response.status_code == 404
        assert response.json() == {"error": "unknown path /nope"}

    def test_unique_values_across_tenants(
        self, client_for, admin_client: TestClient
    ) -> None:
        """Test unique values of all tenants."""
        _post(client_for("t1"), "/cluster", {"name": "a", "attributes": {"env": "prod"}})
        _post(client_for("t2"), "/cluster", {"name": "a", "attributes": {"env": "dev"}})

        response = admin_client.post(
            "/v1_admin/cluster/uniqueValues", json={"fields": {"attributes.env": ""}}
        )

        assert response.json()["fields"] == {"attributes.env": ["dev", "prod"]}


class TestSeverityUpdates:
    """Test cases for exception policy severity updates."""

    def test_vulnerability_exceptions(self, client_for, admin_client: TestClient) -> None:
        """Test that the matching vulnerability of every tenant is updated."""
        body = {"name": "p", "vulnerabilities": [{"name": "CVE-1"}, {"name": "CVE-2"}]}
        _post(client_for("t1"), "/v1_vulnerability_exception_policy", body)
        _post(client_for("t2"), "/v1_vulnerability_exception_policy", body)

        response = admin_client.put(
            "/v1_admin/updateVulnerabilityExceptionsSeverity",
            json={"cves": ["CVE-2"], "severityScore": 7},
        )
        [policy] = client_for("t1").get("/v1_vulnerability_exception_policy").json()

        assert response.json() == {"updatedCount": 2}
        assert policy["vulnerabilities"] == [
            {"name": "CVE-1"},
            {"name": "CVE-2", "severityScore": 7},
        ]

    def test_posture_exceptions(self, client: TestClient, admin_client: TestClient) -> None:
        """Test the posture exception update."""
        _post(
            client,
            "/v1_posture_exception_policy",
            {"name": "p", "posturePolicies": [{"controlID": "C-0001"}]},
        )

        response = admin_client.put(
            "/v1_admin/updatePostureExceptionsSeverity",
            json={"controlIDs": ["C-0001", "C-0002"], "severityScore": 3},
        )

        assert response.json() == {"updatedCount": 1}
