"""
Construction and signing of compute request orders.
"""
import logging
import os
from typing import Optional

from web3 import Web3

from ..constants import ZERO_ADDRESS
from ..exceptions import SigningError
from ..models import AppOrder, RequestOrder, TransferPayload, UnsignedRequestOrder, WorkerpoolOrder
from ..signer import Signer
from ..utils import same_address
from .typed_data import OrderDomain, recover_order_signer, signable_order

SALT_SIZE = 32


class RequestOrderBuilder:
    """
    Build the request order that asks the TEE application to settle a transfer.

    The ledger contract is both beneficiary and callback of the task, so the
    application's result lands back on the ledger.
    """

    def __init__(self, domain: OrderDomain, ledger_address: str, logger: Optional[logging.Logger] = None):
        self.domain = domain
        self.ledger_address = ledger_address
        self.logger = logger or logging.getLogger(__name__)

    def build_request_order(
        self,
        app_offer: AppOrder,
        workerpool_offer: WorkerpoolOrder,
        requester: str,
        payload: TransferPayload,
    ) -> UnsignedRequestOrder:
        """
        Map two offers and a transfer payload onto an unsigned request order.

        Addresses are lower-cased as given; checksum validation is left to
        the signing step and the marketplace.
        """
        ledger = self.ledger_address.lower()
        return UnsignedRequestOrder(
            app=app_offer.app.lower(),
            appmaxprice=app_offer.appprice,
            dataset=ZERO_ADDRESS,
            datasetmaxprice=0,
            workerpool=workerpool_offer.workerpool.lower(),
            workerpoolmaxprice=workerpool_offer.workerpoolprice,
            requester=requester.lower(),
            volume=1,
            tag=app_offer.tag,
            category=workerpool_offer.category,
            trust=workerpool_offer.trust,
            beneficiary=ledger,
            callback=ledger,
            params=payload.to_params(),
        )

    def sign(self, order: UnsignedRequestOrder, signer: Signer) -> RequestOrder:
        """
        Bind a fresh salt and sign the order as its requester.

        Raises:
            SigningError: If the signer is not the requester or signing fails
        """
        if not same_address(signer.address, order.requester):
            raise SigningError(f"Signer {signer.address} is not the order requester {order.requester}")

        salt = Web3.to_hex(os.urandom(SALT_SIZE))
        try:
            signed = signer.sign_message(signable_order(order, self.domain, salt))
        except Exception as e:
            self.logger.error(f"Request order signing failed: {e}")
            raise SigningError(f"Failed to sign request order: {e}")

        signature = Web3.to_hex(signed.signature)
        self.logger.debug(f"Signed request order with salt {salt[:10]}…, signature {signature[:12]}…")
        return RequestOrder(**order.model_dump(), salt=salt, sign=signature)

    def recover_signer(self, order: RequestOrder) -> str:
        """
        Raises:
            ValueError: If the order carries no readable signature
        """
        return recover_order_signer(order, self.domain)

    def verify(self, order: RequestOrder) -> bool:
        """True when the order signature recovers to its requester."""
        try:
            return same_address(self.recover_signer(order), order.requester)
        except Exception as e:
            self.logger.warning(f"Request order signature could not be recovered: {e}")
            return False
