"""On-chain price and liquidity lookups against Uniswap-v2 style DEXes."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from web3 import Web3

from chainspread.src.scanner.exceptions import ChainLookupError
from chainspread.src.scanner.models import TokenConfiguration

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

ERC20_ABI = [
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
]

ROUTER_ABI = [
    {
        "inputs": [
            {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
            {"internalType": "address[]", "name": "path", "type": "address[]"},
        ],
        "name": "getAmountsOut",
        "outputs": [{"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}],
        "stateMutability": "view",
        "type": "function",
    },
]

FACTORY_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "", "type": "address"},
            {"internalType": "address", "name": "", "type": "address"},
        ],
        "name": "getPair",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]

PAIR_ABI = [
    {
        "inputs": [],
        "name": "getReserves",
        "outputs": [
            {"internalType": "uint112", "name": "_reserve0", "type": "uint112"},
            {"internalType": "uint112", "name": "_reserve1", "type": "uint112"},
            {"internalType": "uint32", "name": "_blockTimestampLast", "type": "uint32"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "token0",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]


@dataclass(frozen=True)
class ChainNetwork:
    """Connection details and routing addresses for one blockchain."""

    name: str
    rpc_url: str
    router: str
    factory: str
    wrapped_native: str
    stable: str
    request_timeout: float = 10.0


def _checksum(address: str) -> str:
    return Web3.to_checksum_address(address)


class ChainService:
    """Reads token prices and pool liquidity from a DEX router and factory.

    Prices are quoted in the network's stable coin by routing one whole token
    through ``[token, wrapped_native, stable]``. Liquidity is the wrapped
    native reserve of the token/native pair, in whole native units.
    """

    def __init__(
        self,
        networks: Mapping[str, ChainNetwork],
        tokens: Iterable[TokenConfiguration],
        *,
        web3_factory: Optional[Callable[[ChainNetwork], Any]] = None,
    ) -> None:
        self.networks = dict(networks)
        self._tokens: Dict[str, TokenConfiguration] = {token.symbol: token for token in tokens}
        self._web3_factory = web3_factory or self._default_web3
        self._clients: Dict[str, Any] = {}
        self._decimals: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _default_web3(network: ChainNetwork) -> Web3:
        return Web3(Web3.HTTPProvider(network.rpc_url, request_kwargs={"timeout": network.request_timeout}))

    def _client(self, network: ChainNetwork) -> Any:
        with self._lock:
            client = self._clients.get(network.name)
            if client is None:
                client = self._web3_factory(network)
                self._clients[network.name] = client
            return client

    def _resolve(self, symbol: str) -> Tuple[TokenConfiguration, ChainNetwork, str]:
        token = self._tokens.get(symbol)
        if token is None:
            raise ChainLookupError(f"Unknown token {symbol}")
        network = self.networks.get(token.blockchain)
        if network is None:
            raise ChainLookupError(f"No chain configured for {token.blockchain} ({symbol})")
        if not token.address:
            raise ChainLookupError(f"Token {symbol} has no contract address on {token.blockchain}")
        return token, network, _checksum(token.address)

    def _token_decimals(self, network: ChainNetwork, address: str) -> int:
        key = (network.name, address)
        cached = self._decimals.get(key)
        if cached is not None:
            return cached
        contract = self._client(network).eth.contract(address=address, abi=ERC20_ABI)
        decimals = int(contract.functions.decimals().call())
        self._decimals[key] = decimals
        return decimals

    def get_latest_price(self, symbol: str) -> float:
        """Price of one ``symbol`` token in the chain's stable coin."""

        _, network, token_address = self._resolve(symbol)
        try:
            token_decimals = self._token_decimals(network, token_address)
            stable_address = _checksum(network.stable)
            stable_decimals = self._token_decimals(network, stable_address)
            router = self._client(network).eth.contract(address=_checksum(network.router), abi=ROUTER_ABI)
            path = [token_address, _checksum(network.wrapped_native), stable_address]
            amounts = router.functions.getAmountsOut(10 ** token_decimals, path).call()
        except Exception as exc:
            raise ChainLookupError(f"Price lookup failed for {symbol} on {network.name}: {exc}") from exc

        if not amounts:
            raise ChainLookupError(f"Router returned no amounts for {symbol} on {network.name}")
        price = int(amounts[-1]) / 10 ** stable_decimals
        logger.debug(f"{symbol} on-chain price on {network.name}: {price}")
        return price

    def get_liquidity(self, symbol: str) -> float:
        """Wrapped-native reserve of the ``symbol``/native pair."""

        _, network, token_address = self._resolve(symbol)
        native_address = _checksum(network.wrapped_native)
        try:
            client = self._client(network)
            factory = client.eth.contract(address=_checksum(network.factory), abi=FACTORY_ABI)
            pair_address = factory.functions.getPair(token_address, native_address).call()
            if not pair_address or pair_address == ZERO_ADDRESS:
                raise ChainLookupError(f"No {symbol}/native pair on {network.name}")
            pair = client.eth.contract(address=_checksum(pair_address), abi=PAIR_ABI)
            reserve0, reserve1, _ = pair.functions.getReserves().call()
            token0 = pair.functions.token0().call()
            native_decimals = self._token_decimals(network, native_address)
        except ChainLookupError:
            raise
        except Exception as exc:
            raise ChainLookupError(f"Liquidity lookup failed for {symbol} on {network.name}: {exc}") from exc

        native_reserve = reserve1 if _checksum(token0) == token_address else reserve0
        return int(native_reserve) / 10 ** native_decimals
