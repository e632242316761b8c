# bmweb

`bmweb` is a small HTTP/1.0 server with no dependencies outside the standard
library. It presents recorded network bandwidth figures to a browser or to
other programs. It answers `GET` requests only. Any other method gets
`405 Method not allowed` with an `Allow: GET` header. Each connection
carries one request and one response, and the connection is then closed.

## What it serves

| Path          | Response                                                                 |
|---------------|--------------------------------------------------------------------------|
| `/monitor`    | Recent rows as JSON. The `ts` parameter is required and gives the number of seconds to look back. |
| `/summary`    | Totals for today, this month, this year and all time, plus host names and the earliest timestamp. |
| `/query`      | Totals between `from` and `to`, grouped by `group`. `csv=1` returns a CSV attachment instead of JSON. |
| `/sync`       | Rows newer than `ts`, one per line, as `application/vnd.codebox.bitmeter-sync`. |
| `/export`     | Every stored row as the CSV attachment `bitmeterOsExport.csv`.           |
| `/config`     | With no parameters, the settings as a `var config = {...};` script. With parameters, an update of those settings. |
| `/alert`      | Runs one of the `action`s `list`, `status`, `create`, `update` or `delete`. |
| `/m/about`    | The file `m/about` from the web root, with `<!--[version]-->` replaced.  |
| anything else | A static file from the web root.                                         |

### Details

- **Host and adapter filter.** `/monitor`, `/query` and `/summary` accept
  `ha=host:adapter` to limit the results to one adapter. The host `local`
  means this machine.
- **Monitor timestamps.** `/monitor` reports each timestamp as an offset back
  from the server's time. Rows stamped in the future are left out.
- **Query end date.** `/query` accepts `from` and `to` in either order. It
  moves the end forward by one day so that the whole of the last date is
  included.
- **Errors.** A missing or invalid required parameter gets
  `500 Bad/missing parameter`.
- **Path rewriting.**
  - `/` is served from `/index.html`.
  - `/m` and `/m/` are served from `/m/index.xml`.
  - Other `/m/...` paths that contain no dot get `.xml` appended.
- **Redirects.** For `/`, `/m` and `/m/`, a request that carries a `Host`
  header is answered with `303 See Other`. The redirect points to
  `http://<host>/index.html`.
- **Missing and refused files.** A missing file gets `404 Not Found`. A path
  outside the web root, or a file that cannot be read, gets `403 Forbidden`.
- **Content types.** The file extension decides the content type, for
  example `html`, `js`, `css` or `png`. Unknown extensions are sent as
  `application/octet-stream`.
- **Placeholders.** `bmweb.files.do_subs` replaces `<!--[name]-->` markers in
  a file. Files of 20480 bytes or more are not sent at all.

### Config updates

Only these settings can be changed:

| Key                    | Accepted values                         |
|------------------------|-----------------------------------------|
| `web.monitor_interval` | 1000–30000                              |
| `web.history_interval` | 5000–60000                              |
| `web.summary_interval` | 1000–60000                              |
| `web.rss.items`        | 1–20                                    |
| `web.rss.freq`         | 1–2                                     |
| `web.server_name`      | Text of up to 32 characters, without `<` or `>` |
| `web.rss.host`         | Text of up to 32 characters, without `<` or `>` |
| `web.colour_dl`        | Six characters from `0-9a-f`, stored with a leading `#` |
| `web.colour_ul`        | Six characters from `0-9a-f`, stored with a leading `#` |

The parameter `_` is ignored. Any other name, or an unacceptable value,
stops the update with a 500 response. Updates applied before the bad one
stay stored. `bmweb.config.validate_update` and `bmweb.config.apply_updates`
raise `ConfigError` in that case.

### Administrative requests

Config updates, and alert `create`, `update` and `delete`, need admin
access. Without it they get `403 Forbidden`. `WebServer` grants admin access
when the connection's local address is in `127.0.0.0/8`, or when remote
administration is turned on.

## Using it from Python

The caller supplies storage:

- **Traffic data:** an object providing the methods of
  `bmweb.models.DataSource`. It returns `bmweb.models.Data` rows and a
  `bmweb.models.Summary`.
- **Settings:** any mutable mapping of setting keys to string values.
- **Alerts:** an object providing the methods of `bmweb.alerts.AlertStore`,
  which works with `bmweb.alerts.Alert` records.

```python
from bmweb.app import Application
from bmweb.server import WebServer, settings_from_config

application = Application(source, config_store, alert_store, web_root)
settings = settings_from_config(config_store, web_root)

server = WebServer(application, settings)
try:
    server.serve_forever()   # returns once server.shutdown() is called from another thread
finally:
    server.shutdown()
```

`settings_from_config` reads these keys from the config store:

- `web.port` is the listening port. It defaults to 2605, which is also used
  when the stored value is outside 1–65535.
- `web.allow_remote` controls remote access:
  - `0` or unset binds to 127.0.0.1 only.
  - `1` accepts remote connections.
  - `2` also gives remote clients admin access.

`WebServer` answers each connection on its own thread. `Application` handles
requests that touch shared data, meaning anything other than a plain file,
one at a time.

To handle a single request without a socket, for example in a test, wrap
any writable binary stream in `bmweb.response.ResponseWriter(stream, clock)`.
Then call `Application.handle(writer, raw_request, allow_admin)`. `clock` is
a function returning the current time in seconds. The `Date` header, the
monitor offsets and the alert status all use it.

## What it does not do

- **No storage.** `bmweb` stores no data. It has no database and records no
  traffic. The figures come only from the `DataSource`, settings mapping and
  `AlertStore` passed to `Application`.
- **No RSS feed.** It has no RSS feed.
- **No generated mobile pages.** It has no generated mobile monitor or
  summary pages. Such paths are served as plain files.
- **No command-line program.** Start the server from Python as shown above.