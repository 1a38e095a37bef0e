#!/usr/bin/env python3
"""
Solana JSON-RPC client for Solana Insights
Typed wrappers over the node queries used by the aggregators
"""

import itertools
from typing import Any, Dict, List, Optional

from solana_insights.api_client import BaseJSONClient
from solana_insights.models import MalformedPayloadError, MintInfo, SignatureInfo, SolanaApiError, TokenAccount
from solana_insights.schemas import (
    LargestAccount, LargestTokenAccount, PerformanceSample, SupplySnapshot, TokenAccountOwner,
    TransactionDetails, VoteAccount, parse_mint_account, parse_signature, parse_token_account,
)

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"
LAMPORTS_PER_SOL = 1e9
MINT_ACCOUNT_SIZE = 82


def _as_list(result: Any, method: str) -> List[Any]:
    if not isinstance(result, list):
        raise MalformedPayloadError(f"{method}: expected list result, got {type(result).__name__}", endpoint=method)
    return result


def _as_int(result: Any, method: str) -> int:
    if isinstance(result, bool) or not isinstance(result, int):
        raise MalformedPayloadError(f"{method}: expected integer result, got {type(result).__name__}", endpoint=method)
    return result


def _context_value(result: Any, method: str) -> Any:
    """Unwrap the {context, value} envelope used by most account queries"""
    if not isinstance(result, dict) or 'value' not in result:
        raise MalformedPayloadError(f"{method}: missing context value", endpoint=method)
    return result['value']


class SolanaRPCClient(BaseJSONClient):
    """Read-only Solana node queries over JSON-RPC 2.0"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._ids = itertools.count(1)

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Send one JSON-RPC request and return its result"""
        request = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or []
        }
        data = await self._request_json('POST', self.settings.rpc_url, endpoint=method, payload=request)
        if not isinstance(data, dict):
            raise MalformedPayloadError(f"{method}: response is not an object", endpoint=method)

        error = data.get('error')
        if error:
            message = error.get('message', str(error)) if isinstance(error, dict) else str(error)
            code = error.get('code') if isinstance(error, dict) else None
            raise SolanaApiError(f"RPC {method} failed: {message}", code=code, details=error, endpoint=method)
        if 'result' not in data:
            raise MalformedPayloadError(f"{method}: response has neither result nor error", endpoint=method)
        return data['result']

    # Accounts

    async def get_balance(self, address: str, commitment: str = "confirmed",
                          min_context_slot: Optional[int] = None) -> int:
        """Balance in lamports"""
        config: Dict[str, Any] = {"commitment": commitment}
        if min_context_slot is not None:
            config["minContextSlot"] = min_context_slot
        result = await self.call("getBalance", [address, config])
        return _as_int(_context_value(result, "getBalance"), "getBalance")

    async def get_account_info(self, address: str) -> Optional[Dict[str, Any]]:
        """Account with jsonParsed data, None when the account does not exist"""
        result = await self.call("getAccountInfo", [address, {"encoding": "jsonParsed"}])
        value = _context_value(result, "getAccountInfo")
        if value is not None and not isinstance(value, dict):
            raise MalformedPayloadError("getAccountInfo: value is not an object", endpoint="getAccountInfo")
        return value

    async def get_mint(self, mint: str) -> MintInfo:
        return parse_mint_account(mint, await self.get_account_info(mint))

    async def get_token_account_owner(self, token_account: str) -> TokenAccountOwner:
        return TokenAccountOwner.from_account_value(await self.get_account_info(token_account))

    async def get_parsed_token_accounts_by_owner(self, owner: str, mint: Optional[str] = None) -> List[TokenAccount]:
        """Token accounts of a wallet, for one mint or for the whole token program"""
        account_filter = {"mint": mint} if mint else {"programId": TOKEN_PROGRAM_ID}
        result = await self.call("getTokenAccountsByOwner", [owner, account_filter, {"encoding": "jsonParsed"}])
        entries = _as_list(_context_value(result, "getTokenAccountsByOwner"), "getTokenAccountsByOwner")
        return [parse_token_account(entry) for entry in entries]

    async def get_program_accounts(self, program_id: str, data_size: int) -> List[str]:
        """Addresses of program accounts with the given data size; account data is not transferred"""
        result = await self.call("getProgramAccounts", [program_id, {
            "encoding": "base64",
            "dataSlice": {"offset": 0, "length": 0},
            "filters": [{"dataSize": data_size}]
        }])
        addresses = []
        for entry in _as_list(result, "getProgramAccounts"):
            if not isinstance(entry, dict) or not isinstance(entry.get('pubkey'), str):
                raise MalformedPayloadError("getProgramAccounts: entry without pubkey", endpoint="getProgramAccounts")
            addresses.append(entry['pubkey'])
        return addresses

    async def get_largest_accounts(self) -> List[LargestAccount]:
        result = await self.call("getLargestAccounts", [{"commitment": "confirmed"}])
        entries = _as_list(_context_value(result, "getLargestAccounts"), "getLargestAccounts")
        return [LargestAccount.from_payload(entry) for entry in entries]

    # Tokens

    async def get_token_largest_accounts(self, mint: str) -> List[LargestTokenAccount]:
        result = await self.call("getTokenLargestAccounts", [mint])
        entries = _as_list(_context_value(result, "getTokenLargestAccounts"), "getTokenLargestAccounts")
        return [LargestTokenAccount.from_payload(entry) for entry in entries]

    async def get_token_supply(self, mint: str) -> float:
        """Circulating supply of a mint in UI units"""
        value = _context_value(await self.call("getTokenSupply", [mint]), "getTokenSupply")
        if not isinstance(value, dict):
            raise MalformedPayloadError("getTokenSupply: value is not an object", endpoint="getTokenSupply")
        if value.get('uiAmount') is not None:
            return float(value['uiAmount'])
        try:
            return int(value['amount']) / (10 ** int(value['decimals']))
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedPayloadError(f"getTokenSupply: bad amount: {e}", endpoint="getTokenSupply") from e

    # Transactions

    async def get_signatures_for_address(self, address: str, limit: int = 1000,
                                         min_context_slot: Optional[int] = None) -> List[SignatureInfo]:
        config: Dict[str, Any] = {"limit": limit}
        if min_context_slot is not None:
            config["minContextSlot"] = min_context_slot
        result = await self.call("getSignaturesForAddress", [address, config])
        return [parse_signature(entry) for entry in _as_list(result, "getSignaturesForAddress")]

    async def get_transaction(self, signature: str) -> Optional[TransactionDetails]:
        """Confirmed transaction details, None when the node no longer has them"""
        result = await self.call("getTransaction", [signature, {
            "encoding": "json",
            "maxSupportedTransactionVersion": 0
        }])
        if result is None:
            return None
        return TransactionDetails.from_payload(result)

    # Cluster

    async def get_slot(self) -> int:
        return _as_int(await self.call("getSlot"), "getSlot")

    async def get_transaction_count(self) -> int:
        return _as_int(await self.call("getTransactionCount", [{"commitment": "confirmed"}]), "getTransactionCount")

    async def get_epoch(self) -> int:
        result = await self.call("getEpochInfo")
        if not isinstance(result, dict):
            raise MalformedPayloadError("getEpochInfo: result is not an object", endpoint="getEpochInfo")
        return _as_int(result.get('epoch'), "getEpochInfo")

    async def get_supply(self) -> SupplySnapshot:
        return SupplySnapshot.from_payload(await self.call("getSupply"))

    async def get_recent_performance_samples(self, limit: int = 1) -> List[PerformanceSample]:
        result = await self.call("getRecentPerformanceSamples", [limit])
        return [PerformanceSample.from_payload(entry) for entry in _as_list(result, "getRecentPerformanceSamples")]

    async def get_vote_accounts(self) -> List[VoteAccount]:
        """Currently voting validators"""
        result = await self.call("getVoteAccounts")
        if not isinstance(result, dict):
            raise MalformedPayloadError("getVoteAccounts: result is not an object", endpoint="getVoteAccounts")
        return [VoteAccount.from_payload(entry) for entry in _as_list(result.get('current'), "getVoteAccounts")]
