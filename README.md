# polyarb

Building blocks for a bot that trades the hourly "up or down" crypto
prediction markets. It finds each hour's markets, keeps the YES and NO
order books, spots moments when buying both sides costs no more than the
$1 payout, and keeps track of the positions and the dollar exposure that
result.

## Modules

| Module | Purpose |
| --- | --- |
| `polyarb.config` | `Config.from_env(environ)` builds the settings from a mapping of environment variables. `parse_slippage` and `parse_arbitrage_order_type` parse the `SLIPPAGE` and `ARBITRAGE_ORDER_TYPE` values; `OrderType` holds `GTC`, `GTD`, `FOK` and `FAK`. |
| `polyarb.discoverer` | `calculate_current_window_timestamp` and `calculate_next_window_timestamp` give the hourly windows in Eastern time, `timestamp_to_slug_format` names them, `parse_market` turns a market record into a `MarketInfo`, and `MarketDiscoverer` builds slugs such as `btc-up-or-down-january-16-3am-et` and fetches the matching markets. |
| `polyarb.scheduler` | `MarketScheduler` fetches the current window's markets, or sleeps until the next window and polls every 2 seconds until its markets appear. |
| `polyarb.orderbook` | `BookUpdate` and `PriceLevel` hold a book snapshot; `OrderBookMonitor` caches the latest book per token and, on a YES update whose NO book is known, returns an `OrderBookPair`. |
| `polyarb.arbitrage` | `ArbitrageDetector.check_arbitrage` returns an `ArbitrageOpportunity` when the best asks (rounded to cents) sum to at most 1 and each leg is worth at least $1 at the smaller best-ask size, floored to cents. |
| `polyarb.arbitrage_logger` | `log_arbitrage_opportunity` appends an opportunity to a file as pretty JSON followed by a `---` line; the async variant runs off the event loop and logs write errors instead of raising. |
| `polyarb.positions` | `PositionTracker` holds per-token sizes and USD costs and answers imbalance and exposure-limit questions. |
| `polyarb.recovery` | `RecoveryStrategy` and the actions `NoAction`, `SellExcess`, `MonitorForExit`, `ManualIntervention`. Hedging is switched off: partial and one-sided fills are only logged and always give `NoAction`. |
| `polyarb.manager` | `RiskManager` registers an `OrderPairResult`, classifies it with `PairStatus`, updates positions and exposure, and asks the recovery strategy what to do (`ManualIntervention` when neither side filled). |
| `polyarb.hedge_monitor` | `HedgeMonitor` watches `MonitorForExit` positions and, once the best bid reaches take-profit or stop-loss, sells the part not covered by the opposite token. Fees come from `calculate_fee`, sizes from `calculate_order_size`. |
| `polyarb.logger` | `init_logger(environ)` sets up the `polyarb` logger. |

## Configuration

`Config.from_env(environ)` reads the given mapping. Called with no
argument it first loads a `.env` file and then reads `os.environ`.
`POLYMARKET_PRIVATE_KEY` is required (a `ValueError` is raised without it);
every other value falls back to its default when missing or unparsable.

| Variable | Default | Field |
| --- | --- | --- |
| `POLYMARKET_PRIVATE_KEY` | required | `private_key` |
| `POLYMARKET_PROXY_ADDRESS` | unset | `proxy_address`, a 40-hex-digit address normalised to lower case with `0x` |
| `MIN_PROFIT_THRESHOLD` | `0.001` | `min_profit_threshold` |
| `MAX_ORDER_SIZE_USDC` | `100.0` | `max_order_size_usdc` |
| `CRYPTO_SYMBOLS` | `btc,eth,xrp,sol` | `crypto_symbols`, trimmed and lower-cased |
| `MARKET_REFRESH_ADVANCE_SECS` | `5` | `market_refresh_advance_secs` |
| `RISK_MAX_EXPOSURE_USDC` | `1000.0` | `risk_max_exposure_usdc` |
| `RISK_IMBALANCE_THRESHOLD` | `0.1` | `risk_imbalance_threshold` |
| `HEDGE_TAKE_PROFIT_PCT` | `0.05` | `hedge_take_profit_pct` |
| `HEDGE_STOP_LOSS_PCT` | `0.05` | `hedge_stop_loss_pct` |
| `ARBITRAGE_EXECUTION_SPREAD` | `0.01` | `arbitrage_execution_spread` |
| `SLIPPAGE` | `0,0.01` | `slippage`, a pair; a single value is used for both |
| `GTD_EXPIRATION_SECS` | `300` | `gtd_expiration_secs` |
| `ARBITRAGE_ORDER_TYPE` | `GTD` | `arbitrage_order_type`; any case, unknown values mean `GTD` |
| `STOP_ARBITRAGE_BEFORE_END_MINUTES` | `0` | `stop_arbitrage_before_end_minutes` |
| `MERGE_INTERVAL_MINUTES` | `0` | `merge_interval_minutes` |
| `MIN_YES_PRICE_THRESHOLD` | `0.0` | `min_yes_price_threshold` |

Other variables used by the package:

| Variable | Used by | Meaning |
| --- | --- | --- |
| `GAMMA_API_URL` | `MarketDiscoverer` | base URL of the markets API when no `base_url` or `fetch_markets` is given |
| `LOG_LEVEL` | `init_logger` | `trace`, `debug`, `info` (default), `warn`, `warning`, `error` or `off` |
| `LOG_FILE` | `init_logger` | write logs to this file, created afresh, instead of standard error |

```python
from polyarb.config import Config
from polyarb.logger import init_logger

config = Config.from_env({"POLYMARKET_PRIVATE_KEY": "placeholder"})
init_logger({"LOG_LEVEL": "debug"})
```

## Hourly windows

Windows open on the hour in Eastern time, taken as a fixed UTC-5 offset,
so daylight saving time is not followed. A slug names the hour a window
opens, for example `january-16-3am-et`.

## What the package does not do

- It has no command to run; it is a library to build a bot from.
- It does not place arbitrage orders, sign orders or hold a wallet.
  `HedgeMonitor` posts its sells through a `submit_sell_order(token_id,
  price, size)` coroutine that the caller supplies.
- It has no WebSocket client. `OrderBookMonitor.create_orderbook_stream`
  passes the token ids to a `subscribe` callable you provide, and books are
  fed in through `handle_book_update`.
- Several settings (order size, spread, slippage, GTD expiry, merge
  interval, stop-before-end, YES price floor) are read into `Config` but
  nothing in the package acts on them.

## Tests

The tests use pytest and pytest-asyncio, installed by the `test` extra.