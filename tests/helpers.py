"""Shared fakes for carrier HTTP tests."""
from unittest.mock import Mock

ENDPOINTS = (
    'https://primary.carrier.test/api',
    'https://secondary.carrier.test/api',
    'https://tertiary.carrier.test/api',
)


def make_response(status_code=200, json_data=None, text='', headers=None, url='https://primary.carrier.test/api'):
    """Mock requests.Response; json() raises ValueError when json_data is None."""
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.headers = headers or {'Content-Type': 'application/json'}
    response.url = url
    if json_data is None:
        response.json.side_effect = ValueError('No JSON object could be decoded')
    else:
        response.json.return_value = json_data
    return response


def awb_created(awb='7X1234567890'):
    return make_response(200, {'success': True, 'data': [{'awbNumber': awb}]})


class FakeSession:
    """Stands in for requests.Session; replays scripted outcomes in order.

    Each outcome is a response or an exception instance to raise. The last
    outcome repeats once the script runs out.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.headers = {}
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({'method': method, 'url': url, **kwargs})
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome
