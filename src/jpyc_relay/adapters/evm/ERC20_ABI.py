"""
JPYC ERC20 + ERC-3009 + EIP-2612 Smart Contract ABI Module

This module provides simplified ABI definitions for the JPYC token calls the
relay and the CLI make: balance / metadata reads, ERC-3009
``transferWithAuthorization`` and ``receiveWithAuthorization``, EIP-2612
``permit`` with its ``nonces`` counter, and plain ``transferFrom``.

Usage:
    from ERC20_ABI import get_jpyc_abi

    contract = web3.eth.contract(address=token_address, abi=get_jpyc_abi())
"""

from typing import Dict, Any, List


def get_balance_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for querying a JPYC balance.

    Returns:
        List[Dict[str, Any]]: ABI for balanceOf function

    Example:
        abi = get_balance_abi()
        # Use with web3.py: web3.eth.contract(address=token_address, abi=abi)
        # Call: contract.functions.balanceOf(address).call()
    """
    return [
        {
            "name": "balanceOf",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "account", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
        }
    ]


def get_metadata_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for the token's ``name()`` and ``totalSupply()`` views.

    Returns:
        List[Dict[str, Any]]: ABI entries for ``name`` and ``totalSupply``.
    """
    return [
        {
            "name": "name",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "string"}],
        },
        {
            "name": "totalSupply",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "uint256"}],
        },
    ]


def _authorization_inputs() -> List[Dict[str, str]]:
    return [
        {"name": "from",        "type": "address"},
        {"name": "to",          "type": "address"},
        {"name": "value",       "type": "uint256"},
        {"name": "validAfter",  "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce",       "type": "bytes32"},
        {"name": "v",           "type": "uint8"},
        {"name": "r",           "type": "bytes32"},
        {"name": "s",           "type": "bytes32"},
    ]


def get_erc3009_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC-3009 ``transferWithAuthorization`` and ``receiveWithAuthorization``.

    Both functions take the signed authorization values (from, to, value,
    validAfter, validBefore, nonce, v, r, s), matching the fields of
    :class:`~jpyc_relay.adapters.evm.schemas.ERC3009Authorization`.  The
    ``receive`` variant additionally requires ``msg.sender == to``.

    Returns:
        List[Dict[str, Any]]: ABI containing both function entries.

    Example::

        abi = get_erc3009_abi()
        contract = web3.eth.contract(address=token_address, abi=abi)
        tx = contract.functions.receiveWithAuthorization(
            from_addr, relayer_addr, value,
            valid_after, valid_before, nonce_bytes32,
            v, r_bytes32, s_bytes32,
        ).build_transaction({...})
    """
    return [
        {
            "name": "transferWithAuthorization",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": _authorization_inputs(),
            "outputs": [],
        },
        {
            "name": "receiveWithAuthorization",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": _authorization_inputs(),
            "outputs": [],
        },
    ]


def get_permit_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for EIP-2612 ``permit`` and its ``nonces(owner)`` counter.

    Note the argument order: ``permit(owner, spender, value, deadline, v, r, s)``.
    The nonce is part of the signed message but not of the call.

    Returns:
        List[Dict[str, Any]]: ABI entries for ``permit`` and ``nonces``.
    """
    return [
        {
            "name": "permit",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "owner",    "type": "address"},
                {"name": "spender",  "type": "address"},
                {"name": "value",    "type": "uint256"},
                {"name": "deadline", "type": "uint256"},
                {"name": "v",        "type": "uint8"},
                {"name": "r",        "type": "bytes32"},
                {"name": "s",        "type": "bytes32"},
            ],
            "outputs": [],
        },
        {
            "name": "nonces",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "owner", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
        },
    ]


def get_transfer_from_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC20 ``transferFrom(from, to, value)``.

    Returns:
        List[Dict[str, Any]]: ABI for ERC20 ``transferFrom`` function.

    Example:
        abi = get_transfer_from_abi()
        contract = web3.eth.contract(address=token_address, abi=abi)
        tx = contract.functions.transferFrom(owner, recipient, value).build_transaction({...})
    """
    return [
        {
            "name": "transferFrom",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "from",  "type": "address"},
                {"name": "to",    "type": "address"},
                {"name": "value", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        }
    ]


def get_jpyc_abi() -> List[Dict[str, Any]]:
    """
    Get the combined ABI for every JPYC call this package makes.

    Returns:
        List[Dict[str, Any]]: Concatenation of all ABI fragments above.
    """
    return (
        get_balance_abi()
        + get_metadata_abi()
        + get_erc3009_abi()
        + get_permit_abi()
        + get_transfer_from_abi()
    )
