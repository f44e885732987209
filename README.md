# certradar

A library for checking the certificate and TLS posture of a domain: DNS
record lookups, CAA policy discovery, CNAME chain resolution, an SSL health
check, low-level TLS probes, certificate and chain parsing, the rules that
turn findings into issues and a grade, and renderers that print the results
as coloured text reports or JSON.

## Installation

```
pip install .
```

## Modules

### `certradar.models`

Dataclasses for every result (`DnsResult`, `CaaAnalysis`, `CnameChain`,
`SslHealthCheckResult`, `SslAnalysisResult`, `SearchResult`, `Certificate`,
and so on), the `CertRadarError` exception, `grade_for_score(score)` and
`to_json(value)` / `dumps(value)`, which turn a result into JSON data or
pretty-printed JSON text using camelCase field names. Fields that are `None`
and marked optional are left out.

### `certradar.dns`

`DnsService(resolver=None)` looks records up through a dnspython resolver.
If you do not pass one, it queries 1.1.1.1 and 1.0.0.1.

- `lookup_all(domain)` runs the A, AAAA, MX, TXT, NS, CNAME and CAA lookups
  in parallel. A lookup that fails comes back empty.
- `lookup_mx` returns MX records sorted by priority.
- `resolve_cname_chain(domain)` follows CNAMEs for up to ten hops and flags
  loops.
- `analyze_caa(domain)` walks up from the domain towards its parent names
  until it finds CAA records. It reports the CAs authorised for ordinary and
  wildcard issuance, the iodef address, and whether any record is critical.
- `summarize_caa(raw_records, found_at, inherited)` builds a `CaaAnalysis`
  from a list of records.

### `certradar.health`

- `run_health_check(dns, domain)` combines CAA analysis, CNAME chain
  resolution and address lookups into an `SslHealthCheckResult`. The result
  has a score out of 100, a grade and recommendations.
- `build_health_result(...)` does the scoring on results you already have.

### `certradar.ssl_probe`

Blocking TLS probes built on the standard `ssl` module:

- `probe_protocol(host, port, version)` checks one version: `"TLSv1"`,
  `"TLSv1.1"`, `"TLSv1.2"` or `"TLSv1.3"`.
- `probe_cipher` checks whether the server accepts a cipher list.
- `probe_cipher_negotiated` returns the cipher the server picks from a list.
- `fetch_peer_chain` returns the presented certificates, leaf first, without
  verifying them.
- `verify_chain` checks the chain against the system trust store.
- `resolve_address` resolves host and port to an address.

Whether TLS 1.0 or 1.1 can be probed at all depends on the local OpenSSL
build.

### `certradar.ssl_certs`

- `parse_certificate(cert, host, now=None)` turns a `cryptography` certificate
  into an `SslCertificateInfo`.
- `parse_certificate_chain(certs, now=None)` classifies each certificate as
  leaf, intermediate or root. It flags weak RSA keys, intermediates expiring
  within 30 days, and a chain that does not end in a self-signed root.
- `days_remaining` and `describe_public_key` are available on their own.

### `certradar.ssl_rules`

- `CIPHER_TEST_LIST` is the list of suites worth probing.
- `is_weak_cipher` and `has_forward_secrecy` classify suites and key
  exchanges.
- `parse_hsts_header(value)` reads an HSTS header.
- `detect_issues(...)` lists certificate, protocol, cipher, OCSP, HSTS,
  chain, CAA and cipher-preference problems.
- `calculate_grade(...)` scores these findings from A+ to F.
- `sort_issues` orders issues critical, then warning, then info.

### Rendering

- `certradar.render_dns`: `format_dns_results(result, domain)` and
  `format_health_results(result)`.
- `certradar.render_search`: `format_search_results(result, limit=None)`
  renders a `SearchResult` as a table. `is_date_expired(date_str, today=None)`
  is also available.
- `certradar.render_ssl`: `format_ssl_analysis(result)`.
- `certradar.colors`: the styling helpers. Call `set_color_enabled(False)` to
  turn colours off, or `None` to go back to detecting the terminal. Colours
  are also dropped when `NO_COLOR` is set or output is not a terminal.

## Example

```python
from certradar.dns import DnsService
from certradar.health import run_health_check
from certradar.render_dns import format_health_results
from certradar.models import dumps

result = run_health_check(DnsService(), "example.com")
print(format_health_results(result))
print(dumps(result))
```

## What it does not do

- There is no command-line program. You call the package from Python.
- There is no Certificate Transparency search client. `format_search_results`
  renders a `SearchResult` that you build yourself.
- There is no single function that runs a full TLS analysis. The probes, the
  certificate parsing and the issue and grade rules are separate pieces, and
  you assemble an `SslAnalysisResult` from them.
- Nothing fetches HSTS headers, the HSTS preload status or stapled OCSP
  responses. `HstsInfo` and `OcspStaplingInfo` are filled in by the caller.
- There is no security-headers check and no registration (RDAP) lookup.

## Running the tests

```
pip install ".[test]"
pytest
```