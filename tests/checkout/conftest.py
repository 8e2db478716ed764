import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _integrations():
    """Fresh fake integrations and default settings for every test."""
    from checkout.config import reset_settings
    from checkout.directory import reset_directory
    from checkout.gateway import reset_gateway
    from checkout.messaging import reset_messenger

    reset_gateway()
    reset_messenger()
    reset_directory()
    reset_settings()
    yield
    reset_gateway()
    reset_messenger()
    reset_directory()
    reset_settings()


@pytest.fixture()
def gateway():
    from checkout.gateway import set_gateway
    from checkout.gateway.fake_adapter import FakeGateway

    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def messenger():
    from checkout.messaging import set_messenger
    from checkout.messaging.fake_adapter import FakeMessenger

    fake = FakeMessenger()
    set_messenger(fake)
    return fake


@pytest.fixture()
def directory():
    from checkout.cart.lines import AppointmentKind
    from checkout.directory import set_directory
    from checkout.directory.memory_adapter import InMemoryDirectory
    from checkout.directory.port import AppointmentRecord, ContactRecord, CustomerRecord

    fake = InMemoryDirectory()
    fake.add_customer(CustomerRecord(id="cust-001", name="Dana Levi", phone="050-123-4567", email="dana@example.com"))
    fake.add_contact(ContactRecord(id="contact-1", customer_id="cust-001", name="Avi Levi", phone="052-765-4321"))
    fake.add_appointment(
        AppointmentRecord(
            id="appt-001",
            kind=AppointmentKind.GROOMING,
            customer_id="cust-001",
            price=120.0,
            pet_name="Rexi",
            breed="Poodle",
        )
    )
    set_directory(fake)
    return fake


@pytest.fixture()
def settings():
    from checkout.config import CheckoutSettings, set_settings

    active = CheckoutSettings(
        poll_interval_seconds=0.01,
        poll_timeout_seconds=0.2,
        payment_link_base_url="https://pay.example.com",
        callback_url="https://api.example.com/checkout/callbacks/payment-received",
        currency_code=1,
    )
    set_settings(active)
    return active


@pytest.fixture()
def store():
    from checkout.cart.store import CartStore

    return CartStore()
