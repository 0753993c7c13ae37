import json
import unittest
from pathlib import Path

import httpx

from webflow_api import GET_ITEM_MAX_PAGES, APIError, DecodeError, WebflowClient

SITE_ID: str = 'mysiteid'
FIXTURES: Path = Path(__file__).parent / 'test_data'


def load_fixture(name: str) -> object:
    with (FIXTURES / name).open('r', encoding='utf-8') as fh:
        return json.load(fh)


class TestGetItem(unittest.TestCase):
    """
    Tests get_item() against a fake server holding the dogs collection (id "1") with items
      blue (1), green (2), red (3), and brown (4), split over two pages.
    """

    def setUp(self) -> None:
        self.requested: list[str] = []
        self.api: WebflowClient = WebflowClient(
            'mytoken', SITE_ID, base_url='https://webflow.test', transport=httpx.MockTransport(self.handler)
        )

    def tearDown(self) -> None:
        self.api.close()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requested.append(request.url.path)
        if request.url.path == '/sites/mysiteid/collections':
            return httpx.Response(200, json=load_fixture('collections_dogs_cats.json'))
        if request.url.path == '/collections/1/items':
            if request.url.params.get('offset') == '2':
                return httpx.Response(200, json=load_fixture('items_dogs_page_2.json'))
            return httpx.Response(200, json=load_fixture('items_dogs_page_1.json'))
        if request.url.path == '/collections/9/items':
            return httpx.Response(200, json={'items': ['not-an-object'], 'count': 1, 'offset': 0, 'total': 1})
        return httpx.Response(404, json={'code': 404, 'err': 'Collection not found'})

    def test_no_selectors_returns_none_without_requests(self) -> None:
        """
        Checks that empty selectors are a quiet no-op.
        """
        self.assertIsNone(self.api.get_item('', '', '', '', ''))
        self.assertIsNone(self.api.get_item(collection_name='dogs'))
        self.assertIsNone(self.api.get_item(item_name='blue'))
        self.assertEqual(self.requested, [])

    def test_collection_name_and_item_id(self) -> None:
        computed: dict[str, object] | None = self.api.get_item(collection_name='dogs', item_id='3')
        self.assertIsNotNone(computed)
        self.assertEqual(computed['name'], 'red')  # type: ignore[index]

    def test_collection_name_and_item_name(self) -> None:
        """
        Checks that the raw payload is returned, fields and all.
        """
        computed: dict[str, object] | None = self.api.get_item(collection_name='dogs', item_name='green')
        expected: dict[str, object] = {
            '_id': '2',
            'name': 'green',
            'slug': 'green',
            '_cid': '1',
            '_archived': False,
            '_draft': True,
        }
        self.assertEqual(computed, expected)

    def test_collection_slug_and_item_id(self) -> None:
        computed: dict[str, object] | None = self.api.get_item(collection_slug='dogs1', item_id='3')
        self.assertEqual(computed['_id'], '3')  # type: ignore[index]

    def test_collection_id_skips_collection_listing(self) -> None:
        computed: dict[str, object] | None = self.api.get_item(collection_id='1', item_name='blue')
        self.assertEqual(computed['_id'], '1')  # type: ignore[index]
        self.assertNotIn('/sites/mysiteid/collections', self.requested)

    def test_name_and_id_must_both_match(self) -> None:
        computed: dict[str, object] | None = self.api.get_item(collection_id='1', item_name='brown', item_id='4')
        self.assertEqual(computed['_id'], '4')  # type: ignore[index]
        self.assertIsNone(self.api.get_item(collection_id='1', item_name='brown', item_id='3'))

    def test_name_wins_over_slug_and_id(self) -> None:
        """
        Checks the selector priority: the name is used even when a (wrong) slug and id are also given.
        """
        computed: dict[str, object] | None = self.api.get_item('dogs', 'cats1', '2', 'red', '')
        self.assertEqual(computed['_id'], '3')  # type: ignore[index]

    def test_unknown_item_returns_none(self) -> None:
        self.assertIsNone(self.api.get_item(collection_name='dogs', item_name='z'))
        self.assertIsNone(self.api.get_item(collection_slug='dogs1', item_name='z'))

    def test_unknown_collection_name_returns_none(self) -> None:
        self.assertIsNone(self.api.get_item(collection_name='birds', item_name='blue'))

    def test_unknown_collection_id_raises_api_error(self) -> None:
        with self.assertRaises(APIError) as ctx:
            self.api.get_item(collection_id='nope', item_name='blue')
        self.assertEqual(str(ctx.exception), 'Collection not found')

    def test_non_object_item_raises_decode_error(self) -> None:
        with self.assertRaises(DecodeError):
            self.api.get_item(collection_id='9', item_name='blue')


class TestGetItemSafetyBound(unittest.TestCase):
    """
    Tests that get_item() stops paging a server whose `total` is never reached.
    """

    def test_absent_item_gives_up_after_eleven_pages(self) -> None:
        """
        Checks that an absent item is "not found" after GET_ITEM_MAX_PAGES + 1 item-page requests, without error.
        """
        item_requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            item_requests.append(request)
            offset: int = int(request.url.params['offset'])
            return httpx.Response(
                200,
                json={
                    'items': [{'_id': str(offset), 'name': f'dog-{offset}'}],
                    'count': 1,
                    'limit': 100,
                    'offset': offset,
                    'total': 1_000_000,
                },
            )

        with WebflowClient(
            'mytoken', SITE_ID, base_url='https://webflow.test', transport=httpx.MockTransport(handler)
        ) as api:
            computed: dict[str, object] | None = api.get_item(collection_id='1', item_name='z')

        self.assertIsNone(computed)
        self.assertEqual(len(item_requests), GET_ITEM_MAX_PAGES + 1)
        self.assertEqual(len(item_requests), 11)
        self.assertEqual(item_requests[-1].url.params['offset'], '10')


if __name__ == '__main__':
    unittest.main()
