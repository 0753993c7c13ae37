"""
Read-only client for the Webflow CMS API (collections, and the items within them).

Layers, leaf to root:
- ApiTransport: one authenticated GET, retried on 429, 5xx, and connection failures.
- WebflowClient.method_get(): classifies the response; decodes success or error bodies.
- Collection lookups: full listing, then a case-insensitive scan by name or slug.
- Item paging: walks `/collections/{id}/items` by offset, bounded by a max-page count.
- get_item(): resolves a collection, pages through its items, returns the first match.

Items are passed around as raw JSON payloads (dicts); callers decode them into their own shapes.
"Not found" is always `None`, never an exception.

Usage:
    with WebflowClient(token, site_id) as api:
        item = api.get_item(collection_name='dogs', item_name='blue')
"""

import abc
import logging
import os
import time
from collections.abc import Callable
from datetime import datetime

import httpx

log = logging.getLogger(__name__)


## constants --------------------------------------------------------
DEFAULT_BASE_URL: str = 'https://api.webflow.com'
API_VERSION: str = '1.0.0'
LIST_COLLECTIONS_PATH_TPL: str = '/sites/{site_id}/collections'
LIST_COLLECTION_ITEMS_PATH_TPL: str = '/collections/{collection_id}/items'

PAGE_LIMIT: int = 100  # items requested per page
GET_ITEM_MAX_PAGES: int = 10  # safety bound used by get_item()
DEFAULT_MAX_TRIES: int = 10
DEFAULT_TIMEOUT: httpx.Timeout = httpx.Timeout(connect=30.0, read=60.0, write=60.0, pool=30.0)
USER_AGENT: str = 'webflow-api-tools/1.0'


## errors -----------------------------------------------------------
class WebflowError(Exception):
    """
    Base class for everything this module raises.
    """


class ConfigError(WebflowError):
    """
    Raised when required configuration (eg an environment variable) is missing or invalid.
    """


class TransportError(WebflowError):
    """
    Raised when a request can't be made, or when an error response has a body that can't be parsed.
    """


class DecodeError(WebflowError):
    """
    Raised when a successful response's body isn't valid JSON, or isn't the expected shape.
    """


class APIError(WebflowError):
    """
    Raised when the API answers with a non-2xx status and a structured error body.
    `str(exc)` is the server's `err` field, verbatim.
    """

    def __init__(
        self, message: str, *, status_code: int, code: int | None = None, name: str = '', path: str = '', msg: str = ''
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.status_code: int = status_code
        self.code: int | None = code
        self.name: str = name
        self.path: str = path
        self.msg: str = msg

    @staticmethod
    def from_json(status_code: int, data: dict[str, object]) -> 'APIError':
        """
        Builds the error from a `{msg, code, name, path, err}` body.
        Falls back to `msg`, then to the status code, when `err` is empty.
        """
        err: str = str(data.get('err') or '')
        msg: str = str(data.get('msg') or '')
        code: object = data.get('code')
        message: str = err or msg or f'API error; status code {status_code}'
        return APIError(
            message,
            status_code=status_code,
            code=code if isinstance(code, int) else None,
            name=str(data.get('name') or ''),
            path=str(data.get('path') or ''),
            msg=msg,
        )


## field helpers ----------------------------------------------------
def _expect_object(data: object, what: str) -> dict[str, object]:
    if not isinstance(data, dict):
        raise DecodeError(f'expected a JSON object for {what}; got {type(data).__name__}')
    return data


def _str_field(data: dict[str, object], key: str, what: str) -> str:
    val: object = data.get(key)
    if val is None:
        return ''
    if not isinstance(val, str):
        raise DecodeError(f'{what} field `{key}` should be a string; got {type(val).__name__}')
    return val


def _int_field(data: dict[str, object], key: str, what: str) -> int:
    val: object = data.get(key)
    if val is None:
        return 0
    if isinstance(val, bool) or not isinstance(val, int):
        raise DecodeError(f'{what} field `{key}` should be an integer; got {type(val).__name__}')
    return val


def _bool_field(data: dict[str, object], key: str) -> bool:
    return bool(data.get(key, False))


def _timestamp_field(data: dict[str, object], key: str, what: str) -> datetime | None:
    """
    Parses an ISO-8601 timestamp like `2016-10-24T19:41:48.349Z`; returns None when absent.
    """
    val: str = _str_field(data, key, what)
    if not val:
        return None
    try:
        return datetime.fromisoformat(val)
    except ValueError as exc:
        raise DecodeError(f'{what} field `{key}` is not an ISO-8601 timestamp: ``{val}``') from exc


## data model -------------------------------------------------------
class Collection:
    """
    One collection, as listed by `GET /sites/{site_id}/collections`.
    """

    def __init__(
        self,
        id: str,
        name: str,
        slug: str = '',
        singular_name: str = '',
        created_on: datetime | None = None,
        last_updated: datetime | None = None,
    ) -> None:
        self.id: str = id
        self.name: str = name
        self.slug: str = slug
        self.singular_name: str = singular_name
        self.created_on: datetime | None = created_on
        self.last_updated: datetime | None = last_updated

    def __repr__(self) -> str:
        return f'Collection(id={self.id!r}, name={self.name!r}, slug={self.slug!r})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Collection):
            return NotImplemented
        return (
            self.id,
            self.name,
            self.slug,
            self.singular_name,
            self.created_on,
            self.last_updated,
        ) == (other.id, other.name, other.slug, other.singular_name, other.created_on, other.last_updated)

    @staticmethod
    def from_json(data: object) -> 'Collection':
        obj: dict[str, object] = _expect_object(data, 'collection')
        return Collection(
            id=_str_field(obj, '_id', 'collection'),
            name=_str_field(obj, 'name', 'collection'),
            slug=_str_field(obj, 'slug', 'collection'),
            singular_name=_str_field(obj, 'singularName', 'collection'),
            created_on=_timestamp_field(obj, 'createdOn', 'collection'),
            last_updated=_timestamp_field(obj, 'lastUpdated', 'collection'),
        )

    @staticmethod
    def list_from_json(data: object) -> list['Collection']:
        if not isinstance(data, list):
            raise DecodeError(f'expected a JSON array of collections; got {type(data).__name__}')
        return [Collection.from_json(entry) for entry in data]


class CollectionItem:
    """
    The default item shape; only the fields every Webflow item carries.
    Used to read `name` and `_id` off a raw item payload, eg by get_item().
    """

    def __init__(
        self, id: str, name: str, slug: str = '', cid: str = '', archived: bool = False, draft: bool = False
    ) -> None:
        self.id: str = id
        self.name: str = name
        self.slug: str = slug
        self.cid: str = cid
        self.archived: bool = archived
        self.draft: bool = draft

    def __repr__(self) -> str:
        return f'CollectionItem(id={self.id!r}, name={self.name!r})'

    @staticmethod
    def from_json(data: object) -> 'CollectionItem':
        obj: dict[str, object] = _expect_object(data, 'collection item')
        return CollectionItem(
            id=_str_field(obj, '_id', 'collection item'),
            name=_str_field(obj, 'name', 'collection item'),
            slug=_str_field(obj, 'slug', 'collection item'),
            cid=_str_field(obj, '_cid', 'collection item'),
            archived=_bool_field(obj, '_archived'),
            draft=_bool_field(obj, '_draft'),
        )


class ItemPage:
    """
    One page of `GET /collections/{id}/items`: the raw item payloads plus the paging counters.
    """

    def __init__(self, items: list[dict[str, object]], offset: int, count: int, total: int, limit: int = 0) -> None:
        self.items: list[dict[str, object]] = items
        self.offset: int = offset
        self.count: int = count
        self.total: int = total
        self.limit: int = limit

    @staticmethod
    def from_json(data: object) -> 'ItemPage':
        obj: dict[str, object] = _expect_object(data, 'item page')
        items: object = obj.get('items')
        if items is None:
            items = []
        if not isinstance(items, list):
            raise DecodeError(f'item page field `items` should be an array; got {type(items).__name__}')
        return ItemPage(
            items=items,
            offset=_int_field(obj, 'offset', 'item page'),
            count=_int_field(obj, 'count', 'item page'),
            total=_int_field(obj, 'total', 'item page'),
            limit=_int_field(obj, 'limit', 'item page'),
        )


## lookup helpers (shared by the real client and the fake) ----------
def find_collection(collections: list[Collection], *, name: str = '', slug: str = '') -> Collection | None:
    """
    Returns the first collection whose name (or slug) matches, case-insensitively; server order breaks ties.
    Called by: get_collection_by_name(), get_collection_by_slug()
    """
    if name:
        lower_name: str = name.lower()
        for collection in collections:
            if collection.name.lower() == lower_name:
                return collection
    elif slug:
        lower_slug: str = slug.lower()
        for collection in collections:
            if collection.slug.lower() == lower_slug:
                return collection
    return None


def find_item(items: list[dict[str, object]], *, item_name: str = '', item_id: str = '') -> dict[str, object] | None:
    """
    Returns the first raw item whose `name` and/or `_id` match exactly (both filters apply when both are given).
    Raises DecodeError if an item isn't a JSON object.
    Called by: get_item()
    """
    for raw_item in items:
        item: CollectionItem = CollectionItem.from_json(raw_item)
        if item_name and item.name != item_name:
            continue
        if item_id and item.id != item_id:
            continue
        return raw_item
    return None


## transport --------------------------------------------------------
def exponential_backoff(attempt: int) -> float:
    """
    Seconds to wait after failed attempt number `attempt` (1-based): 2, 4, 8, then capped at 15.
    """
    return float(min(2**attempt, 15))


def _sleep(backoff_s: float) -> None:
    """
    Sleeps for given seconds; centralizes sleep for easier tweaking.
    """
    time.sleep(backoff_s)


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class ApiTransport:
    """
    Encapsulates the HTTP GET with retries and backoff.
    - Retries on HTTP 429 (rate limiting), on 5xx responses, and on connection-level failures.
    - Raises TransportError at once, without retrying, when the request itself is malformed (eg no url scheme).
    - Makes at most `max_tries` attempts, sleeping `backoff(attempt)` seconds between them.
    - Returns the last response once retries on a retryable status are exhausted,
      so the caller can still read the server's error body.
    - Raises TransportError once retries on connection failures are exhausted.
    """

    def __init__(
        self,
        client: httpx.Client,
        *,
        max_tries: int = DEFAULT_MAX_TRIES,
        backoff: Callable[[int], float] = exponential_backoff,
    ) -> None:
        self.client: httpx.Client = client
        self.max_tries: int = max(1, max_tries)
        self.backoff: Callable[[int], float] = backoff

    def get_with_retries(
        self, url: str, *, params: dict[str, str] | None = None, headers: dict[str, str] | None = None
    ) -> httpx.Response:
        last_exc: Exception | None = None
        resp: httpx.Response | None = None
        for attempt in range(1, self.max_tries + 1):
            try:
                resp = self.client.get(url, params=params, headers=headers)
            except (httpx.UnsupportedProtocol, httpx.LocalProtocolError) as exc:
                raise TransportError(f'unable to make request to ``{url}``; error: {exc}') from exc
            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError) as exc:
                last_exc = exc
                resp = None
                log.warning(f'attempt {attempt}/{self.max_tries} for ``{url}`` failed; error: {exc!r}')
            except (httpx.RequestError, httpx.InvalidURL) as exc:
                raise TransportError(f'unable to make request to ``{url}``; error: {exc}') from exc
            else:
                if not _is_retryable_status(resp.status_code):
                    return resp
                log.warning(f'attempt {attempt}/{self.max_tries} for ``{url}`` got status {resp.status_code}')
            if attempt < self.max_tries:
                _sleep(self.backoff(attempt))
        if resp is not None:
            return resp
        raise TransportError(
            f'request to ``{url}`` failed after {self.max_tries} attempt(s); error: {last_exc}'
        ) from last_exc


def decode_error_response(resp: httpx.Response) -> APIError:
    """
    Parses a non-2xx response's `{msg, code, name, path, err}` body into an APIError (returned, not raised).
    Raises TransportError when the body isn't that shape, so callers can tell
      "the server told us what's wrong" apart from "the server sent garbage".
    """
    try:
        data: object = resp.json()
    except ValueError as exc:
        raise TransportError(
            f'unknown API error; status code {resp.status_code}; unparseable body ``{resp.text[:200]}``; error: {exc}'
        ) from exc
    if not isinstance(data, dict):
        raise TransportError(
            f'unknown API error; status code {resp.status_code}; unexpected body ``{resp.text[:200]}``'
        )
    return APIError.from_json(resp.status_code, data)


## interface --------------------------------------------------------
OnPage = Callable[[list[dict[str, object]]], None]


class WebflowInterface(abc.ABC):
    """
    Every public operation of the client.
    Code that depends on this client should accept a WebflowInterface,
      so tests can hand it a FakeWebflowClient instead of a networked WebflowClient.
    """

    @abc.abstractmethod
    def method_get(self, path: str, query_params: dict[str, str] | None = None) -> object:
        """
        GETs `path` (relative to the base url) and returns the decoded JSON body.
        """

    @abc.abstractmethod
    def get_all_collections(self) -> list[Collection]:
        """
        Returns every collection on the site, in server order.
        """

    @abc.abstractmethod
    def get_collection_by_name(self, name: str) -> Collection | None:
        """
        Returns the collection with this name (case-insensitive), or None.
        """

    @abc.abstractmethod
    def get_collection_by_slug(self, slug: str) -> Collection | None:
        """
        Returns the collection with this slug (case-insensitive), or None.
        """

    @abc.abstractmethod
    def for_each_item_page(self, collection_id: str, max_pages: int, on_page: OnPage) -> None:
        """
        Calls `on_page` with each page's raw items; stops after at most `max_pages + 1` pages.
        """

    @abc.abstractmethod
    def get_all_items_in_collection_by_id(self, collection_id: str, max_pages: int) -> list[dict[str, object]]:
        """
        Returns all raw items of the collection, in delivery order.
        """

    @abc.abstractmethod
    def get_all_items_in_collection_by_name(
        self, collection_name: str, max_pages: int
    ) -> list[dict[str, object]] | None:
        """
        Returns all raw items of the named collection, or None if there's no such collection.
        """

    @abc.abstractmethod
    def get_all_items_in_collection_by_slug(
        self, collection_slug: str, max_pages: int
    ) -> list[dict[str, object]] | None:
        """
        Returns all raw items of the collection with this slug, or None if there's no such collection.
        """

    @abc.abstractmethod
    def get_item(
        self,
        collection_name: str = '',
        collection_slug: str = '',
        collection_id: str = '',
        item_name: str = '',
        item_id: str = '',
    ) -> dict[str, object] | None:
        """
        Returns the raw payload of the first matching item, or None.
        """


## client -----------------------------------------------------------
class WebflowClient(WebflowInterface):
    """
    Networked implementation of WebflowInterface.
    - Holds immutable configuration: token, site id, base url.
    - Owns (and closes) its httpx.Client unless one is passed in.
    - Accepts an httpx transport, eg `httpx.MockTransport` in tests.
    """

    def __init__(
        self,
        token: str,
        site_id: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        max_tries: int = DEFAULT_MAX_TRIES,
        backoff: Callable[[int], float] = exponential_backoff,
        transport: httpx.BaseTransport | None = None,
        client: httpx.Client | None = None,
        timeout: httpx.Timeout | None = None,
    ) -> None:
        self.token: str = token
        self.site_id: str = site_id
        self.base_url: str = base_url.rstrip('/')
        self.version: str = API_VERSION
        self._owns_client: bool = client is None
        if client is None:
            client = httpx.Client(
                headers={'user-agent': USER_AGENT},
                timeout=timeout or DEFAULT_TIMEOUT,
                transport=transport,
            )
        self.api: ApiTransport = ApiTransport(client, max_tries=max_tries, backoff=backoff)

    @classmethod
    def from_env(cls, **kwargs: object) -> 'WebflowClient':
        """
        Builds a client from `WEBFLOW_API_TOKEN`, `WEBFLOW_SITE_ID`, and optionally
          `WEBFLOW_BASE_URL` and `WEBFLOW_MAX_TRIES`.
        Keyword arguments are passed through to the constructor and win over the environment.
        """
        token: str = os.getenv('WEBFLOW_API_TOKEN', '').strip()
        site_id: str = os.getenv('WEBFLOW_SITE_ID', '').strip()
        if not token:
            raise ConfigError('WEBFLOW_API_TOKEN is not set')
        if not site_id:
            raise ConfigError('WEBFLOW_SITE_ID is not set')
        base_url: str = os.getenv('WEBFLOW_BASE_URL', '').strip()
        if base_url:
            kwargs.setdefault('base_url', base_url)
        max_tries_str: str = os.getenv('WEBFLOW_MAX_TRIES', '').strip()
        if max_tries_str:
            try:
                max_tries: int = int(max_tries_str)
            except ValueError as exc:
                raise ConfigError(f'WEBFLOW_MAX_TRIES should be a positive integer; got ``{max_tries_str}``') from exc
            if max_tries <= 0:
                raise ConfigError(f'WEBFLOW_MAX_TRIES should be a positive integer; got ``{max_tries_str}``')
            kwargs.setdefault('max_tries', max_tries)
        return cls(token, site_id, **kwargs)  # type: ignore[arg-type]

    def close(self) -> None:
        if self._owns_client:
            self.api.client.close()

    def __enter__(self) -> 'WebflowClient':
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    ## transport ----------------------------------------------------
    def method_get(self, path: str, query_params: dict[str, str] | None = None) -> object:
        """
        GETs `path` with auth and version headers; returns the decoded JSON body.
        Raises APIError, TransportError, or DecodeError.
        """
        url: str = f'{self.base_url}{path}'
        headers: dict[str, str] = {
            'Authorization': f'Bearer {self.token}',
            'Accept-Version': self.version,
        }
        log.debug(f'trying url, ``{url}``; params, ``{query_params}``')
        resp: httpx.Response = self.api.get_with_retries(url, params=query_params or None, headers=headers)
        if not 200 <= resp.status_code <= 299:
            raise decode_error_response(resp)
        try:
            return resp.json()
        except ValueError as exc:
            raise DecodeError(f'invalid JSON in response from ``{url}``; error: {exc}') from exc

    ## collections --------------------------------------------------
    def get_all_collections(self) -> list[Collection]:
        data: object = self.method_get(LIST_COLLECTIONS_PATH_TPL.format(site_id=self.site_id))
        return Collection.list_from_json(data)

    def get_collection_by_name(self, name: str) -> Collection | None:
        return find_collection(self.get_all_collections(), name=name)

    def get_collection_by_slug(self, slug: str) -> Collection | None:
        return find_collection(self.get_all_collections(), slug=slug)

    ## items --------------------------------------------------------
    def for_each_item_page(self, collection_id: str, max_pages: int, on_page: OnPage) -> None:
        """
        Walks the collection's item listing by offset, handing each page's raw items to `on_page`.

        Stops when the server reports `offset + count >= total`.
        `max_pages` is a safety bound, independent of what the server reports:
          once it's used up the loop just stops (no error), so a misbehaving `total` can't loop forever.
        Exceptions raised by `on_page` propagate immediately.
        """
        path: str = LIST_COLLECTION_ITEMS_PATH_TPL.format(collection_id=collection_id)
        offset: int = 0
        remaining: int = max_pages
        while True:
            query_params: dict[str, str] = {'offset': str(offset), 'limit': str(PAGE_LIMIT)}
            page: ItemPage = ItemPage.from_json(self.method_get(path, query_params))
            log.debug(f'collection ``{collection_id}``; offset, {page.offset}; count, {page.count}; total, {page.total}')
            on_page(page.items)
            offset = page.offset + page.count
            if offset >= page.total:
                break
            remaining -= 1
            if remaining < 0:
                log.warning(
                    f'stopped paging collection ``{collection_id}`` at offset {offset} of {page.total}; '
                    f'max_pages ({max_pages}) reached'
                )
                break

    def get_all_items_in_collection_by_id(self, collection_id: str, max_pages: int) -> list[dict[str, object]]:
        items: list[dict[str, object]] = []
        self.for_each_item_page(collection_id, max_pages, items.extend)
        return items

    def get_all_items_in_collection_by_name(
        self, collection_name: str, max_pages: int
    ) -> list[dict[str, object]] | None:
        collection: Collection | None = self.get_collection_by_name(collection_name)
        if collection is None:
            return None
        return self.get_all_items_in_collection_by_id(collection.id, max_pages)

    def get_all_items_in_collection_by_slug(
        self, collection_slug: str, max_pages: int
    ) -> list[dict[str, object]] | None:
        collection: Collection | None = self.get_collection_by_slug(collection_slug)
        if collection is None:
            return None
        return self.get_all_items_in_collection_by_id(collection.id, max_pages)

    def get_item(
        self,
        collection_name: str = '',
        collection_slug: str = '',
        collection_id: str = '',
        item_name: str = '',
        item_id: str = '',
    ) -> dict[str, object] | None:
        """
        Finds one item, by name and/or id, in a collection given by name, slug, or id.

        - Returns None right away when no collection selector, or no item selector, is given.
        - The collection is picked by the first non-empty of: name, slug, id.
        - Pages through at most GET_ITEM_MAX_PAGES (+1) pages of items.
        - Returns the raw payload of the first match, or None.
        """
        if not (collection_name or collection_slug or collection_id):
            return None
        if not (item_name or item_id):
            return None

        items: list[dict[str, object]] | None
        if collection_name:
            items = self.get_all_items_in_collection_by_name(collection_name, GET_ITEM_MAX_PAGES)
        elif collection_slug:
            items = self.get_all_items_in_collection_by_slug(collection_slug, GET_ITEM_MAX_PAGES)
        else:
            items = self.get_all_items_in_collection_by_id(collection_id, GET_ITEM_MAX_PAGES)
        if items is None:
            log.debug(f'no collection found for name ``{collection_name}`` / slug ``{collection_slug}``')
            return None
        return find_item(items, item_name=item_name, item_id=item_id)
