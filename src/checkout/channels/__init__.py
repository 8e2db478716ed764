"""Payment channel adapters, wired to the active integrations."""

from dataclasses import dataclass

from checkout.channels.hosted_page import HostedPageChannel
from checkout.channels.manual import ManualChannel
from checkout.channels.payment_link import PaymentLinkChannel
from checkout.channels.saved_card import SavedCardChannel
from checkout.channels.wallet import WalletChannel
from checkout.config import CheckoutSettings, get_settings
from checkout.directory import get_directory
from checkout.directory.port import Directory
from checkout.gateway import get_gateway
from checkout.gateway.port import PaymentGateway
from checkout.messaging import get_messenger
from checkout.messaging.port import MessagingPort


@dataclass(frozen=True)
class Channels:
    manual: ManualChannel
    wallet: WalletChannel
    hosted_page: HostedPageChannel
    saved_card: SavedCardChannel
    payment_link: PaymentLinkChannel


def build_channels(
    gateway: PaymentGateway | None = None,
    messenger: MessagingPort | None = None,
    directory: Directory | None = None,
    settings: CheckoutSettings | None = None,
) -> Channels:
    gateway = gateway or get_gateway()
    messenger = messenger or get_messenger()
    directory = directory or get_directory()
    settings = settings or get_settings()

    manual = ManualChannel()
    return Channels(
        manual=manual,
        wallet=WalletChannel(messenger, directory, manual),
        hosted_page=HostedPageChannel(gateway, directory, settings),
        saved_card=SavedCardChannel(gateway, directory),
        payment_link=PaymentLinkChannel(messenger, directory, settings),
    )
