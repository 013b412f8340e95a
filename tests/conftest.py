from datetime import date, datetime, timedelta, timezone

import pytest
from redis.exceptions import ConnectionError

from voice_billing.service_templates import ServiceTemplate


NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
TODAY = date(2026, 10, 18)


class FakeTemplateStore:
    """In-memory stand-in for PostgresTemplateStore."""

    def __init__(self, templates=None):
        self.templates = []
        self.calls = []
        self._next_id = 1
        for t in templates or []:
            self.add(t)

    def add(self, template):
        if template.id is None:
            template.id = self._next_id
        self._next_id = max(self._next_id, template.id) + 1
        self.templates.append(template)
        return template

    def find_all_by_user(self, user_id):
        self.calls.append(("find_all_by_user", user_id))
        owned = [t for t in self.templates if t.user_id == user_id]
        return sorted(owned, key=lambda t: (not t.is_preferred, -t.usage_count, t.id))

    def get(self, user_id, template_id):
        for t in self.templates:
            if t.id == template_id and t.user_id == user_id:
                return t
        return None

    def increment_usage(self, template_id):
        self.calls.append(("increment_usage", template_id))
        for t in self.templates:
            if t.id == template_id:
                t.usage_count += 1
                t.updated_at = NOW

    def create(self, fields):
        self.calls.append(("create", fields["name"]))
        return self.add(ServiceTemplate(created_at=NOW, updated_at=NOW, **fields))

    def set_preferred(self, user_id, template_id, is_preferred):
        t = self.get(user_id, template_id)
        if not t:
            return False
        t.is_preferred = is_preferred
        return True

    def add_keywords(self, user_id, template_id, keywords):
        t = self.get(user_id, template_id)
        if not t:
            return None
        t.keywords = f"{t.keywords}, {keywords}" if t.keywords else keywords
        return t


class FailingTemplateStore:
    def __init__(self, fail_on="find_all_by_user"):
        self.fail_on = fail_on
        self.inner = FakeTemplateStore([
            ServiceTemplate(user_id="user1", name="Standard Callout", description="Standard callout fee"),
        ])

    def __getattr__(self, name):
        if name == self.fail_on:
            def boom(*args, **kwargs):
                raise RuntimeError("database is down")
            return boom
        return getattr(self.inner, name)


class FakeBillingStore:
    """In-memory stand-in for PostgresBillingStore."""

    def __init__(self, customers=None, users=None):
        self.customers = list(customers or [])
        self.users = dict(users or {})
        self.invoices = []
        self.payments = []

    def get_user(self, user_id):
        return self.users.get(user_id)

    def list_customers(self, user_id):
        return [c for c in self.customers if c["user_id"] == user_id]

    def find_customer(self, user_id, name):
        for c in self.list_customers(user_id):
            if name.lower() in c["display_name"].lower():
                return c
        return None

    def create_customer(self, user_id, fields):
        customer = {"id": len(self.customers) + 1, "user_id": user_id, **fields}
        self.customers.append(customer)
        return customer

    def last_invoice_number(self, user_id):
        numbers = sorted(
            (i["number"] for i in self.invoices if i["user_id"] == user_id),
            key=lambda n: (len(n), n),
        )
        return numbers[-1] if numbers else None

    def create_invoice(self, user_id, invoice):
        created = {"id": len(self.invoices) + 1, "user_id": user_id, "status": "DRAFT", **invoice}
        self.invoices.append(created)
        return {"id": created["id"], "number": created["number"]}

    def find_invoice(self, user_id, number):
        for invoice in self.invoices:
            if invoice["user_id"] == user_id and invoice["number"] == number:
                customer = next((c for c in self.customers if c["id"] == invoice.get("customer_id")), {})
                return {
                    **invoice,
                    "customer_email": customer.get("email"),
                    "customer_name": customer.get("display_name"),
                }
        return None

    def record_payment(self, invoice_id, payment):
        self.payments.append({"invoice_id": invoice_id, **payment})
        self.set_invoice_status(invoice_id, "PAID")

    def set_invoice_status(self, invoice_id, status):
        for invoice in self.invoices:
            if invoice["id"] == invoice_id:
                invoice["status"] = status


class FakeRedis:
    """Just the hash commands the voice cache uses."""

    def __init__(self):
        self.data = {}

    def hset(self, key, field, value):
        bucket = self.data.setdefault(key, {})
        added = 0 if field in bucket else 1
        bucket[field] = value
        return added

    def hgetall(self, key):
        return dict(self.data.get(key, {}))

    def hdel(self, key, *fields):
        bucket = self.data.get(key, {})
        removed = 0
        for f in fields:
            if bucket.pop(f, None) is not None:
                removed += 1
        return removed

    def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0


class DownRedis:
    def __getattr__(self, name):
        def down(*args, **kwargs):
            raise ConnectionError("connection refused")
        return down


def make_template(name, description="", **kwargs):
    kwargs.setdefault("user_id", "user1")
    return ServiceTemplate(name=name, description=description, **kwargs)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def template_store():
    return FakeTemplateStore()


@pytest.fixture
def billing_store():
    return FakeBillingStore(
        customers=[{"id": 1, "user_id": "user1", "display_name": "John Smith", "email": "john@example.com"}],
        users={"user1": {"id": "user1", "country": "AU", "currency": "AUD"}},
    )


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def recent(now):
    return now - timedelta(days=1)
