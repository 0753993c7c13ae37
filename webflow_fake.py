"""
In-memory stand-in for WebflowClient, for testing code that depends on WebflowInterface.

Holds canned collections and canned raw items per collection id; makes no network calls.
Every call is recorded in `calls` as `(method_name, args)`.
Set `error` to make every call raise it (eg an APIError) instead.
Like the real client, paging an unknown collection id raises a 404 APIError.
"""

from webflow_api import (
    GET_ITEM_MAX_PAGES,
    LIST_COLLECTION_ITEMS_PATH_TPL,
    LIST_COLLECTIONS_PATH_TPL,
    APIError,
    Collection,
    OnPage,
    WebflowError,
    WebflowInterface,
    find_collection,
    find_item,
)


def _route_not_found(path: str) -> APIError:
    return APIError('Route not found', status_code=404, code=404, name='RouteNotFoundError', path=path)


class FakeWebflowClient(WebflowInterface):
    """
    Canned-result implementation of WebflowInterface.
    - `collections` is what get_all_collections() returns, in order.
    - `items_by_collection_id` maps a collection id to its raw items; they're served `page_size` at a time.
    - `responses_by_path` maps a path to the body method_get() returns; unknown paths raise a 404 APIError.
    """

    def __init__(
        self,
        collections: list[Collection] | None = None,
        items_by_collection_id: dict[str, list[dict[str, object]]] | None = None,
        *,
        site_id: str = 'fake-site',
        page_size: int = 100,
        responses_by_path: dict[str, object] | None = None,
        error: WebflowError | None = None,
    ) -> None:
        self.collections: list[Collection] = list(collections or [])
        self.items_by_collection_id: dict[str, list[dict[str, object]]] = dict(items_by_collection_id or {})
        self.site_id: str = site_id
        self.page_size: int = max(1, page_size)
        self.responses_by_path: dict[str, object] = dict(responses_by_path or {})
        self.error: WebflowError | None = error
        self.calls: list[tuple[str, tuple[object, ...]]] = []

    def _record(self, method_name: str, *args: object) -> None:
        self.calls.append((method_name, args))
        if self.error is not None:
            raise self.error

    def method_get(self, path: str, query_params: dict[str, str] | None = None) -> object:
        self._record('method_get', path, query_params)
        if path in self.responses_by_path:
            return self.responses_by_path[path]
        if path == LIST_COLLECTIONS_PATH_TPL.format(site_id=self.site_id):
            return [{'_id': c.id, 'name': c.name, 'slug': c.slug, 'singularName': c.singular_name} for c in self.collections]
        raise _route_not_found(path)

    def get_all_collections(self) -> list[Collection]:
        self._record('get_all_collections')
        return list(self.collections)

    def get_collection_by_name(self, name: str) -> Collection | None:
        self._record('get_collection_by_name', name)
        return find_collection(self.collections, name=name)

    def get_collection_by_slug(self, slug: str) -> Collection | None:
        self._record('get_collection_by_slug', slug)
        return find_collection(self.collections, slug=slug)

    def for_each_item_page(self, collection_id: str, max_pages: int, on_page: OnPage) -> None:
        self._record('for_each_item_page', collection_id, max_pages)
        if collection_id not in self.items_by_collection_id and collection_id not in {c.id for c in self.collections}:
            raise _route_not_found(LIST_COLLECTION_ITEMS_PATH_TPL.format(collection_id=collection_id))
        items: list[dict[str, object]] = self.items_by_collection_id.get(collection_id, [])
        remaining: int = max_pages
        offset: int = 0
        while True:
            page_items: list[dict[str, object]] = items[offset : offset + self.page_size]
            on_page(page_items)
            offset += len(page_items)
            if offset >= len(items):
                break
            remaining -= 1
            if remaining < 0:
                break

    def get_all_items_in_collection_by_id(self, collection_id: str, max_pages: int) -> list[dict[str, object]]:
        collected: list[dict[str, object]] = []
        self.for_each_item_page(collection_id, max_pages, collected.extend)
        return collected

    def get_all_items_in_collection_by_name(
        self, collection_name: str, max_pages: int
    ) -> list[dict[str, object]] | None:
        collection: Collection | None = find_collection(self.collections, name=collection_name)
        if collection is None:
            return None
        return self.get_all_items_in_collection_by_id(collection.id, max_pages)

    def get_all_items_in_collection_by_slug(
        self, collection_slug: str, max_pages: int
    ) -> list[dict[str, object]] | None:
        collection: Collection | None = find_collection(self.collections, slug=collection_slug)
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
        self._record('get_item', collection_name, collection_slug, collection_id, item_name, item_id)
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
            return None
        return find_item(items, item_name=item_name, item_id=item_id)
