"""
Unit tests for device time extraction
"""

import unittest
import sys
import os
from unittest.mock import MagicMock, patch

import requests

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from device_time import (
    DeviceTimeExtractor,
    ISAPI_FAST_PATH_ENDPOINTS,
    SCRAPE_ENDPOINTS,
    build_auth_chain,
    extract_date_from_cgi,
    extract_date_from_html,
    extract_date_from_isapi_xml,
    extract_date_generic,
    select_date_parser,
)


def make_response(status_code=200, text='', content_type='text/plain', headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.headers = {'Content-Type': content_type}
    response.headers.update(headers or {})
    return response


class FakeSession:
    """Records requests and answers through a routing function"""

    def __init__(self, route):
        self.route = route
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        result = self.route(url, kwargs)
        if isinstance(result, Exception):
            raise result
        return result

    def paths(self):
        return [url.split('10.0.0.5', 1)[1] for url, _ in self.calls]


class TestDateParsers(unittest.TestCase):

    def test_isapi_system_time(self):
        body = '<Time><systemTime>2024-01-02T00:00:00</systemTime></Time>'
        self.assertEqual(extract_date_from_isapi_xml(body), '2024-01-02')

    def test_isapi_local_time(self):
        body = '<Time><timeMode>NTP</timeMode><localTime>2023-11-30T12:01:02+08:00</localTime></Time>'
        self.assertEqual(extract_date_from_isapi_xml(body), '2023-11-30')

    def test_isapi_falls_back_to_generic(self):
        body = '<DeviceInfo><firmwareReleasedDate>build 2022-05-06</firmwareReleasedDate></DeviceInfo>'
        self.assertEqual(extract_date_from_isapi_xml(body), '2022-05-06')

    def test_isapi_without_date(self):
        self.assertIsNone(extract_date_from_isapi_xml('<DeviceInfo><model>DS-2CD</model></DeviceInfo>'))

    def test_cgi_key_value(self):
        body = 'model=SNP-6320\nsystem_date=2024-02-29\ntime=10:00:00'
        self.assertEqual(extract_date_from_cgi(body), '2024-02-29')

    def test_cgi_json(self):
        self.assertEqual(extract_date_from_cgi('{"date":"2024-03-01","tz":"UTC"}'), '2024-03-01')

    def test_html_input_value(self):
        html = '<input type="text" id="sysDate" value="2024-04-05">'
        self.assertEqual(extract_date_from_html(html), '2024-04-05')

    def test_generic(self):
        self.assertEqual(extract_date_generic('now: 2024-06-07 08:09'), '2024-06-07')
        self.assertIsNone(extract_date_generic('no date here 2024/06/07'))


class TestSelectDateParser(unittest.TestCase):

    def test_isapi_path(self):
        self.assertIs(select_date_parser('/ISAPI/System/time', 'text/html'), extract_date_from_isapi_xml)

    def test_cgi_path(self):
        self.assertIs(select_date_parser('/config/system.cgi', 'text/html'), extract_date_from_cgi)

    def test_html_content_type(self):
        self.assertIs(select_date_parser('/', 'text/html; charset=utf-8'), extract_date_from_html)

    def test_generic_otherwise(self):
        self.assertIs(select_date_parser('/system', 'application/json'), extract_date_generic)
        self.assertIs(select_date_parser('/system', None), extract_date_generic)


class TestAuthChain(unittest.TestCase):

    def test_without_credentials_only_plain(self):
        self.assertEqual([s.name for s in build_auth_chain()], ['none'])
        self.assertEqual([s.name for s in build_auth_chain('admin', '')], ['none'])

    def test_escalation_order(self):
        self.assertEqual([s.name for s in build_auth_chain('admin', 'secret')],
                         ['none', 'basic', 'digest', 'query', 'header'])


class TestFetch(unittest.TestCase):
    """Test DeviceTimeExtractor.fetch() auth escalation"""

    URL = 'http://10.0.0.5/system'

    def test_no_escalation_without_challenge(self):
        session = FakeSession(lambda url, kw: make_response(200, 'ok'))
        response = DeviceTimeExtractor().fetch(session, self.URL, 'admin', 'secret')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(session.calls), 1)
        self.assertNotIn('auth', session.calls[0][1])

    def test_escalates_until_accepted(self):
        def route(url, kw):
            # Only the query parameter strategy is accepted
            if kw.get('params'):
                return make_response(200, 'date=2024-01-02')
            return make_response(401)

        session = FakeSession(route)
        response = DeviceTimeExtractor().fetch(session, self.URL, 'admin', 'secret')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(session.calls), 4)
        self.assertIsInstance(session.calls[1][1]['auth'], requests.auth.HTTPBasicAuth)
        self.assertIsInstance(session.calls[2][1]['auth'], requests.auth.HTTPDigestAuth)
        self.assertEqual(session.calls[3][1]['params'], {'user': 'admin', 'password': 'secret'})

    def test_header_strategy_is_last_resort(self):
        session = FakeSession(lambda url, kw: make_response(401))
        response = DeviceTimeExtractor().fetch(session, self.URL, 'admin', 'secret')

        self.assertEqual(response.status_code, 401)
        self.assertEqual(len(session.calls), 5)
        last_headers = session.calls[-1][1]['headers']
        self.assertEqual(last_headers['Authorization'], 'Basic YWRtaW46c2VjcmV0')
        self.assertEqual(last_headers['X-Requested-With'], 'XMLHttpRequest')

    def test_forbidden_does_not_escalate(self):
        session = FakeSession(lambda url, kw: make_response(403))
        response = DeviceTimeExtractor().fetch(session, self.URL, 'admin', 'secret')
        self.assertEqual(response.status_code, 403)
        self.assertEqual(len(session.calls), 1)

    def test_unauthenticated_camera_gets_single_request(self):
        session = FakeSession(lambda url, kw: make_response(401))
        response = DeviceTimeExtractor().fetch(session, self.URL)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(len(session.calls), 1)

    def test_plain_request_error_propagates(self):
        session = FakeSession(lambda url, kw: requests.ConnectionError('refused'))
        with self.assertRaises(requests.ConnectionError):
            DeviceTimeExtractor().fetch(session, self.URL, 'admin', 'secret')

    def test_escalation_error_moves_to_next_strategy(self):
        def route(url, kw):
            if 'auth' in kw and isinstance(kw['auth'], requests.auth.HTTPBasicAuth):
                return requests.ConnectionError('reset')
            if 'auth' in kw:
                return make_response(200, '2024-01-02')
            return make_response(401)

        session = FakeSession(route)
        response = DeviceTimeExtractor().fetch(session, self.URL, 'admin', 'secret')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(session.calls), 3)


class TestDeviceTimeExtractor(unittest.TestCase):
    """Test DeviceTimeExtractor.extract()"""

    def test_isapi_fast_path_system_time(self):
        body = '<Time><systemTime>2024-01-02T00:00:00</systemTime></Time>'

        def route(url, kw):
            if url.endswith('/ISAPI/System/deviceInfo'):
                return make_response(200, '<DeviceInfo><model>DS</model></DeviceInfo>', 'application/xml')
            if url.endswith('/ISAPI/System/time'):
                return make_response(200, body, 'application/xml')
            return make_response(404)

        session = FakeSession(route)
        extractor = DeviceTimeExtractor(timeout=3, session=session)

        self.assertEqual(extractor.extract('10.0.0.5', 'admin', 'secret'), '2024-01-02')
        self.assertEqual(session.paths(), ['/ISAPI/System/deviceInfo', '/ISAPI/System/time'])
        for _, kwargs in session.calls:
            self.assertIsInstance(kwargs['auth'], requests.auth.HTTPDigestAuth)
            self.assertEqual(kwargs['timeout'], 3)

    def test_no_fast_path_without_credentials(self):
        session = FakeSession(lambda url, kw: make_response(404))
        extractor = DeviceTimeExtractor(session=session)

        self.assertIsNone(extractor.extract('10.0.0.5'))
        self.assertEqual(session.paths(), SCRAPE_ENDPOINTS)

    def test_full_sweep_order_with_credentials(self):
        session = FakeSession(lambda url, kw: make_response(404))
        extractor = DeviceTimeExtractor(session=session)

        self.assertIsNone(extractor.extract('10.0.0.5', 'admin', 'secret'))
        self.assertEqual(session.paths(), ISAPI_FAST_PATH_ENDPOINTS + SCRAPE_ENDPOINTS)

    def test_samsung_cgi_endpoint(self):
        def route(url, kw):
            if url.endswith('/stw-cgi/system.cgi?action=get'):
                return make_response(200, 'Model=SNO\nCurrentDate=x\ndate=2023-12-31', 'text/plain')
            return make_response(404)

        session = FakeSession(route)
        self.assertEqual(DeviceTimeExtractor(session=session).extract('10.0.0.5'), '2023-12-31')
        self.assertEqual(session.paths()[-1], '/stw-cgi/system.cgi?action=get')

    def test_errors_do_not_abort_the_sweep(self):
        def route(url, kw):
            if url.endswith('/'):
                return make_response(200, '<input id="date" value="2024-05-06">', 'text/html')
            return requests.Timeout('timed out')

        session = FakeSession(route)
        self.assertEqual(DeviceTimeExtractor(session=session).extract('10.0.0.5'), '2024-05-06')
        self.assertEqual(len(session.calls), len(SCRAPE_ENDPOINTS))

    def test_non_success_bodies_are_ignored(self):
        session = FakeSession(lambda url, kw: make_response(500, 'error at 2020-01-01'))
        self.assertIsNone(DeviceTimeExtractor(session=session).extract('10.0.0.5'))

    def test_redirects_are_not_followed(self):
        session = FakeSession(lambda url, kw: make_response(404))
        DeviceTimeExtractor(session=session).extract('10.0.0.5')
        self.assertTrue(all(kw['allow_redirects'] is False for _, kw in session.calls))

    @patch('device_time.requests.Session')
    def test_owned_session_is_closed(self, mock_session_cls):
        session = mock_session_cls.return_value
        session.get.return_value = make_response(404)

        self.assertIsNone(DeviceTimeExtractor().extract('10.0.0.5'))
        session.close.assert_called_once()


if __name__ == '__main__':
    unittest.main()
