import pytest


def _add(client, headers, **overrides):
    body = {
        "name": "Groceries run",
        "amount": 75.5,
        "date": "2023-03-10",
        "note": "weekly",
        "type": "expense",
        "category": "Groceries",
    }
    body.update(overrides)
    return client.post("/transaction/", json=body, headers=headers)


@pytest.fixture
def other_headers(register):
    token = register(username="susan", email="susan@budget.com").json()["token"]
    return {"Authorization": f"Bearer {token}"}


class TestAddTransaction:

    def test_add(self, client, auth_headers):
        res = _add(client, auth_headers)
        assert res.status_code == 200
        body = res.json()
        assert body["ok"] is True
        assert body["transactionId"]

    def test_invalid_name(self, client, auth_headers):
        res = _add(client, auth_headers, name="")
        assert res.status_code == 400
        assert res.json()["error"] == "The transaction's name should be a valid non-empty string."

    def test_invalid_date(self, client, auth_headers):
        res = _add(client, auth_headers, date="someday")
        assert res.status_code == 400
        assert res.json()["error"] == "The transaction's date should be a valid date."

    def test_missing_amount(self, client, auth_headers):
        res = _add(client, auth_headers, amount=None)
        assert res.status_code == 400
        assert res.json()["error"] == "The transaction's amount should be a valid number."

    @pytest.mark.parametrize("amount", [True, "10", [10]])
    def test_amount_is_not_coerced(self, client, auth_headers, repo, amount):
        res = _add(client, auth_headers, amount=amount)
        assert res.status_code == 400
        assert res.json()["error"] == "The transaction's amount should be a valid number."
        assert repo.transactions == {}

    def test_integer_amount(self, client, auth_headers):
        transaction_id = _add(client, auth_headers, amount=40).json()["transactionId"]
        transaction = client.get(f"/transaction/{transaction_id}", headers=auth_headers).json()["transaction"]
        assert transaction["amount"] == 40

    def test_unknown_category(self, client, auth_headers):
        res = _add(client, auth_headers, type="income", category="Groceries")
        assert res.status_code == 404
        assert res.json()["error"] == 'The "income" category of "Groceries" was not found in the database.'


class TestGetTransaction:

    def test_get(self, client, auth_headers):
        transaction_id = _add(client, auth_headers).json()["transactionId"]
        res = client.get(f"/transaction/{transaction_id}", headers=auth_headers)
        assert res.status_code == 200
        transaction = res.json()["transaction"]
        assert transaction["id"] == transaction_id
        assert transaction["name"] == "Groceries run"
        assert transaction["amount"] == 75.5
        assert transaction["type"] == "expense"
        assert transaction["category"] == "Groceries"
        assert transaction["date"].startswith("2023-03-10")

    def test_not_owner(self, client, auth_headers, other_headers):
        transaction_id = _add(client, auth_headers).json()["transactionId"]
        res = client.get(f"/transaction/{transaction_id}", headers=other_headers)
        assert res.status_code == 404
        assert res.json()["error"] == f"The transaction with the given id ({transaction_id}) was not found."

    def test_missing(self, client, auth_headers):
        assert client.get("/transaction/9999", headers=auth_headers).status_code == 404


class TestListTransactions:

    def test_list_only_own(self, client, auth_headers, other_headers):
        _add(client, auth_headers)
        _add(client, auth_headers, name="Paycheck", amount=2000, type="income", category="Paycheck")
        _add(client, other_headers)

        res = client.get("/transaction/", headers=auth_headers)
        assert res.status_code == 200
        body = res.json()
        assert body["transactionCount"] == 2
        assert len(body["transactions"]) == 2

    def test_filters(self, client, auth_headers):
        _add(client, auth_headers, name="Small", amount=10, date="2023-01-05")
        _add(client, auth_headers, name="Medium", amount=50, date="2023-02-05")
        _add(client, auth_headers, name="Big", amount=500, date="2023-03-05", type="expense", category="Home")

        def names(params):
            res = client.get("/transaction/", params=params, headers=auth_headers)
            assert res.status_code == 200
            return sorted(t["name"] for t in res.json()["transactions"])

        assert names({"minAmount": 10}) == ["Big", "Medium"]
        assert names({"minAmount": 10, "maxAmount": 100}) == ["Medium"]
        assert names({"amount": 10, "minAmount": 100}) == ["Small"]
        assert names({"fromDate": "2023-01-31", "toDate": "2023-03-01"}) == ["Medium"]
        assert names({"category": "Home", "type": "expense"}) == ["Big"]
        assert names({"name": "Small"}) == ["Small"]

    def test_user_id_query_param_is_ignored(self, client, auth_headers, other_headers, repo):
        _add(client, other_headers)
        susan = repo.get_user_by_username("susan")
        res = client.get("/transaction/", params={"userId": susan.id}, headers=auth_headers)
        assert res.json()["transactionCount"] == 0

    def test_invalid_filter(self, client, auth_headers):
        res = client.get("/transaction/", params={"fromDate": "yesterday"}, headers=auth_headers)
        assert res.status_code == 400
        assert res.json() == {"ok": False, "error": "The given fromDate is invalid: yesterday"}


class TestEditTransaction:

    def test_edit_fields(self, client, auth_headers):
        transaction_id = _add(client, auth_headers).json()["transactionId"]
        res = client.put(
            f"/transaction/{transaction_id}",
            json={"name": "Market", "amount": 80, "note": "fruit"},
            headers=auth_headers,
        )
        assert res.status_code == 200

        transaction = client.get(f"/transaction/{transaction_id}", headers=auth_headers).json()["transaction"]
        assert transaction["name"] == "Market"
        assert transaction["amount"] == 80
        assert transaction["note"] == "fruit"
        assert transaction["date"].startswith("2023-03-10")

    def test_change_category(self, client, auth_headers):
        transaction_id = _add(client, auth_headers).json()["transactionId"]
        res = client.put(
            f"/transaction/{transaction_id}",
            json={"type": "income", "category": "Refund"},
            headers=auth_headers,
        )
        assert res.status_code == 200
        transaction = client.get(f"/transaction/{transaction_id}", headers=auth_headers).json()["transaction"]
        assert (transaction["type"], transaction["category"]) == ("income", "Refund")

    def test_category_without_type(self, client, auth_headers):
        transaction_id = _add(client, auth_headers).json()["transactionId"]
        res = client.put(f"/transaction/{transaction_id}", json={"category": "Home"}, headers=auth_headers)
        assert res.status_code == 400

    def test_unknown_category(self, client, auth_headers):
        transaction_id = _add(client, auth_headers).json()["transactionId"]
        res = client.put(
            f"/transaction/{transaction_id}",
            json={"type": "income", "category": "Lottery"},
            headers=auth_headers,
        )
        assert res.status_code == 404
        assert res.json()["error"] == "The given income category was not found: Lottery"

    @pytest.mark.parametrize("amount", [True, "10"])
    def test_edit_amount_is_not_coerced(self, client, auth_headers, amount):
        transaction_id = _add(client, auth_headers).json()["transactionId"]
        res = client.put(f"/transaction/{transaction_id}", json={"amount": amount}, headers=auth_headers)
        assert res.status_code == 400
        assert res.json()["error"] == "The transaction's amount should be a valid number."

        transaction = client.get(f"/transaction/{transaction_id}", headers=auth_headers).json()["transaction"]
        assert transaction["amount"] == 75.5

    def test_empty_edit(self, client, auth_headers):
        transaction_id = _add(client, auth_headers).json()["transactionId"]
        res = client.put(f"/transaction/{transaction_id}", json={}, headers=auth_headers)
        assert res.status_code == 400

    def test_not_owner(self, client, auth_headers, other_headers):
        transaction_id = _add(client, auth_headers).json()["transactionId"]
        res = client.put(f"/transaction/{transaction_id}", json={"name": "Mine now"}, headers=other_headers)
        assert res.status_code == 404


class TestDeleteTransaction:

    def test_delete(self, client, auth_headers):
        transaction_id = _add(client, auth_headers).json()["transactionId"]
        res = client.delete(f"/transaction/{transaction_id}", headers=auth_headers)
        assert res.status_code == 200
        assert client.get(f"/transaction/{transaction_id}", headers=auth_headers).status_code == 404

    def test_not_owner(self, client, auth_headers, other_headers):
        transaction_id = _add(client, auth_headers).json()["transactionId"]
        res = client.delete(f"/transaction/{transaction_id}", headers=other_headers)
        assert res.status_code == 404
        assert client.get(f"/transaction/{transaction_id}", headers=auth_headers).status_code == 200


def test_register_add_and_filter_by_min_amount(client, register):
    token = register(username="david", email="david@budget.com").json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    _add(client, headers, name="Cheap", amount=20)
    _add(client, headers, name="Pricey", amount=120)

    res = client.get("/transaction/", params={"minAmount": 50}, headers=headers)
    body = res.json()
    assert body["ok"] is True
    assert [t["name"] for t in body["transactions"]] == ["Pricey"]
    assert body["transactionCount"] == 1
