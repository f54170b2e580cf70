"""
Base Schema Models for the JPYC relay

This module defines the base classes that the other schema models inherit
from. It provides consistent serialization and the transaction status
vocabulary shared by the chain adapter, the checkout service and the CLI.

Core Classes:
    - CanonicalModel: RFC8785-compliant Pydantic base model
    - BaseSignature: Abstract signature component model
    - BasePermit: Abstract signed-authorization model
    - TransactionStatus: Terminal status of a submitted (or rejected) transaction
    - BaseTransactionConfirmation: Abstract transaction confirmation model

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from typing import Optional, Dict, Any
from abc import ABC
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CanonicalModel(BaseModel):
    """
    Pydantic base with a deterministic JSON form.

    Keys are sorted and whitespace is dropped, so two equal models always
    serialize to the same string (useful for log lines and comparisons).
    Aliases are honored, e.g. ``tx_hash`` is written as ``txHash`` where a
    model declares it.
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """Sorted-key, whitespace-free JSON of the model (aliases applied)."""
        data = self.model_dump(mode="json", by_alias=True)
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain ``model_dump()``; nested models become dicts."""
        return self.model_dump()


class BaseSignature(CanonicalModel, ABC):
    """
    Abstract base class for signature components.

    Attributes:
        signature_type: The signing standard (e.g., "EIP2612", "ERC3009")
        created_at: Timestamp when the signature was created
    """

    signature_type: str = Field(..., description="Type of signature (e.g., EIP2612, ERC3009)")
    created_at: datetime = Field(default_factory=datetime.now, description="Signature creation timestamp")

    def validate_format(self) -> bool:
        """
        Validate the signature format.

        Returns:
            bool: True if signature format is valid.

        Raises:
            ValueError: If signature format is invalid with descriptive message.
        """
        raise NotImplementedError


class BasePermit(CanonicalModel, ABC):
    """
    Abstract base class for signed token authorizations.

    Attributes:
        permit_type: Type of authorization (e.g., "EIP2612", "ERC3009")
        signature: Signature components, ``None`` before signing
        created_at: Timestamp when the authorization was created
    """

    permit_type: str = Field(..., description="Type of permit (e.g., EIP2612, ERC3009)")
    signature: Optional[BaseSignature] = Field(None, description="Signature components")
    created_at: datetime = Field(default_factory=datetime.now, description="Permit creation timestamp")


class TransactionStatus(str, Enum):
    """
    Enumeration of possible transaction execution statuses.

    Attributes:
        SUCCESS: Transaction mined with status 1
        FAILED: Transaction mined but reverted (status 0)
        TIMEOUT: Receipt did not arrive within the configured wait
        NETWORK_ERROR: Broadcast failed (RPC unreachable, rejected raw tx)
        INVALID_TRANSACTION: Call could not be built (gas estimation revert,
            bad arguments); nothing was broadcast
    """
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    INVALID_TRANSACTION = "invalid_transaction"


class BaseTransactionConfirmation(CanonicalModel, ABC):
    """
    Abstract base class for transaction confirmation/receipt data.

    Attributes:
        confirmation_type: Type of confirmation (e.g., "evm")
        status: Transaction execution status (TransactionStatus enum)
        execution_time: Seconds between broadcast and receipt
        error_message: Error message if transaction failed
        created_at: Timestamp when confirmation was recorded
    """

    confirmation_type: str = Field(..., description="Type of confirmation (e.g., evm)")
    status: TransactionStatus = Field(..., description="Outcome of the submission")
    execution_time: Optional[float] = Field(None, ge=0, description="Seconds from broadcast to receipt")
    error_message: Optional[str] = Field(None, description="Node or contract error text")
    created_at: datetime = Field(default_factory=datetime.now, description="When the outcome was recorded")

    def is_success(self) -> bool:
        """True only for a mined transaction with receipt status 1."""
        return self.status == TransactionStatus.SUCCESS

    def was_broadcast(self) -> bool:
        """Whether a transaction reached the network (a hash exists)."""
        return self.status in (TransactionStatus.SUCCESS, TransactionStatus.FAILED, TransactionStatus.TIMEOUT)

    def get_confirmation_status(self) -> str:
        """One-line summary for CLI output and logs."""
        if self.status == TransactionStatus.SUCCESS:
            return "Transaction confirmed"
        return f"Transaction failed: {self.error_message or self.status.value}"
