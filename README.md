# dnstoys

A DNS server whose answers are small tools. Ask it for a TXT record and it
replies with the current time in a city, a weather forecast, a currency or
unit conversion, a number spelled out in words, a solved sudoku and more.

## Installing

```
pip install .
```

The test suite needs the `test` extra:

```
pip install ".[test]"
pytest
```

## Running the server

```
dnstoys --config config.toml
```

`--config` may be given more than once, and each value may hold several
comma-separated paths; the files are read in order and later files override
earlier ones. A file that cannot be read is logged and skipped. Without
`--config`, `config.toml` in the current directory is read.
`dnstoys --version` prints the installed package version.

The server answers over UDP on `server.address` (`host:port`; an empty host
listens on every IPv4 address, an IPv6 host may be written in brackets).
Each service is turned on by its own `enabled` key:

```toml
[server]
address = ":5354"
domain = "dns.example.com"

[timezones]
enabled = true
geo_filepath = "cities15000.txt"

[weather]
enabled = true
max_entries = 3
forecast_interval = "3h"
cache_ttl = "1h"
snapshot_enabled = true
snapshot_file = "weather.snapshot"

[fx]
enabled = true
refresh_interval = "6h"
snapshot_enabled = true
snapshot_file = "fx.snapshot"

[ip]
enabled = true

[pi]
enabled = true

[units]
enabled = true
file = "units.json"

[num2words]
enabled = true

[cidr]
enabled = true

[base]
enabled = true

[dice]
enabled = true

[rand]
enabled = true

[coin]
enabled = true

[epoch]
enabled = true
send_local_time = false

[aerial]
enabled = true

[uuid]
enabled = true
max_results = 10

[nanoid]
enabled = true
max_results = 10
max_length = 64

[sudoku]
enabled = true

[excuse]
enabled = true
file = "excuses.txt"

[vitamin]
enabled = true
file = "vitamins.json"

[ifsc]
enabled = true
data_path = "ifsc/"

[digipin]
enabled = true
```

Durations are written like `1h30m`, `90s` or `500ms` (units `ns`, `us`,
`ms`, `s`, `m`, `h`); a bare number is taken as nanoseconds.

### Data files

Several services read their data from files named in the configuration:

- `timezones.geo_filepath`: a tab-separated geonames.org city dump, used by
  both the time and the weather services. Rows whose time zone is unknown are
  skipped.
- `units.file`: a JSON object of unit groups, each with a `base_symbol` and a
  list of `units` having `symbol`, `name` and `value`.
- `excuse.file`: one excuse per line; blank lines and lines starting with `#`
  are ignored.
- `vitamin.file`: a JSON object keyed by upper-case vitamin name, each entry
  with `common_name`, `scientific_name` and a list of `sources`.
- `ifsc.data_path`: a directory of per-bank JSON files, each an object of
  branches with `BANK`, `IFSC`, `MICR`, `BRANCH`, `ADDRESS`, `STATE`, `CITY`,
  `CENTRE` and `DISTRICT`.

### Background fetching and snapshots

The fx service refreshes exchange rates from a public rates API in a
background thread; the weather service queues a fetch the first time a city
is asked for (and again when its cached entry expires) and answers with a
"being fetched" message until the data arrives. Weather fetches are limited
to 15 per second. Both need network access.

When the server receives SIGTERM, SIGHUP, SIGQUIT or SIGINT, every enabled
service with `snapshot_enabled` writes its cache as JSON to its
`snapshot_file` and the server exits. Signal 31 writes the snapshots without
stopping the server. On start the snapshots are read back when
`snapshot_enabled` is set.

## Queries

Each service answers names ending in its suffix. The `help` name lists every
enabled service with an example query; any unknown name is answered with
SERVFAIL and an error record pointing at `help`. Errors from a service are
sent the same way, as a TXT record `error: <message>` in the additional
section.

| Query                      | Answer                                        |
|----------------------------|-----------------------------------------------|
| `mumbai.time`              | current time in every matching city; `mumbai/IN` filters by country |
| `2024-01-01T10:00-berlin-tokyo.time` | the time converted between cities   |
| `berlin.weather`           | forecast for the next few intervals           |
| `99USD-INR.fx`             | currency conversion                           |
| `42km-cm.unit`             | unit conversion; `unit` alone lists units     |
| `123456.words`             | the number in English words                   |
| `10.100.0.0/24.cidr`       | first and last usable address, subnet size    |
| `100dec-hex.base`          | conversion between hex, dec, oct and bin      |
| `1d6.dice`                 | dice roll with an optional `/modifier`        |
| `1-100.rand`               | random number in the range                    |
| `2.coin`                   | coin tosses (at most 42)                      |
| `784783800.epoch`          | UNIX time (s, ms, µs or ns) in readable form  |
| `A12.9352,77.6245/12.9698,77.7500.aerial` | aerial distance in km          |
| `2.uuid`                   | random UUID-v4s                               |
| `2.10.nanoid`              | NanoIDs: count, then length                   |
| `<9 rows>.sudoku`          | solved puzzle, rows separated by dots, 0 for blanks |
| `excuse`                   | a developer excuse                            |
| `ABNA0000001.ifsc`         | Indian bank branch details                    |
| `b12.vitamin`              | names and food sources of a vitamin           |
| `28.6139,77.2090.digipin`  | DIGIPIN for a point, or a point for a DIGIPIN |
| `ip`                       | the address the query came from               |
| `pi`                       | pi as a TXT, A or AAAA record                 |

Services answer TXT and A questions (`pi` also AAAA); a request may carry at
most five questions.

## Using the services from Python

Every service is a `dnstoys.service.Service` with a `query` method that takes
the query with its suffix removed and returns a list of resource records in
zone-file text form:

```python
from dnstoys.services.base import Base
from dnstoys.services.num2words import Num2Words

Base().query("100dec-hex")
# ['100dec-hex 900 TXT "100 dec = 64 hex"']

Num2Words().query("42")
# ['42 900 TXT "42 = forty two"']
```

A bad query raises `dnstoys.service.QueryError`, whose message is what the
server sends back to the client. Services with a cache also have `dump()` and
`load(blob)` for snapshots, and `start()` / `stop()` for their background
thread.

Some functions are useful on their own: `dnstoys.services.aerial.calculate`,
`dnstoys.services.digipin.encode` and `decode`,
`dnstoys.services.num2words.num2words`, and `parse_puzzle`, `solve` and
`format_puzzle` in `dnstoys.services.sudoku`.

To serve a custom set of services, build a `dnstoys.handlers.Resolver` with
the server's domain, `register` each service under its suffix, optionally
call `add_help`, `enable_ip` and `enable_pi`, and pass it to
`dnstoys.server.serve` together with the address to listen on.
`Resolver.handle` takes a parsed `dns.message.Message` and the client address
and returns the response, so it can also be used without the UDP server.
`dnstoys.server.load_config` and `build_resolver` do the same wiring from TOML
files that the `dnstoys` command does.

## What it does not do

- There is no English dictionary service; only the services listed above
  are available.
- No data files ship with the package: the city dump, the units table, the
  excuses, the vitamin and IFSC data must be supplied and named in the
  configuration.
- The server listens over UDP only; there is no TCP listener.