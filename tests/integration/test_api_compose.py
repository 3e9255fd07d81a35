"""
Tests for poster composition endpoint.
"""
import dataclasses
import json
import pytest


EMPTY_TENSORS = [
    {'index': 0, 'data': [[[0.0, 0.0, 0.0, 0.0]]]},
    {'index': 1, 'data': [[0.0]]},
    {'index': 2, 'data': [[0.0]]},
    {'index': 3, 'data': [0.0]},
]

FULL_FRAME_TENSORS = [
    {'index': 0, 'data': [[[0.0, 0.0, 1.0, 1.0]]]},
    {'index': 1, 'data': [[2.0]]},
    {'index': 2, 'data': [[0.95]]},
    {'index': 3, 'data': [1.0]},
]


def post_compose(client, **fields):
    return client.post('/api/compose', data=fields, content_type='multipart/form-data')


class TestComposeEndpoint:
    """Tests for POST /api/compose endpoint."""

    def test_compose_success(self, client, sample_image_bytes):
        response = post_compose(
            client,
            image=(sample_image_bytes, 'photo.png'),
            tensors=json.dumps(EMPTY_TENSORS),
            labels=json.dumps(['a', 'b', 'cat']),
        )
        assert response.status_code == 200

        data = response.get_json()
        assert data['image_size'] == {'w': 800, 'h': 600}
        assert data['models'][0]['model'] == 'default'
        assert data['models'][0]['detections'] == []
        assert data['placement']['style']['color'] == '#ffffff'
        assert len(data['placement']['layout']['lines']) == 3
        assert data['empty_spaces']
        assert 'request_id' in data

    def test_compose_custom_text(self, client, sample_image_bytes):
        response = post_compose(
            client,
            image=(sample_image_bytes, 'photo.png'),
            tensors=json.dumps(EMPTY_TENSORS),
            text='OPEN\nDAY',
        )
        assert response.status_code == 200

        lines = response.get_json()['placement']['layout']['lines']
        assert [line['text'] for line in lines] == ['OPEN', 'DAY']

    def test_compose_multiple_models(self, client, sample_image_bytes):
        outputs = [
            {'model': 'ssd', 'tensors': EMPTY_TENSORS},
            {'model': 'efficientdet', 'tensors': FULL_FRAME_TENSORS},
        ]
        response = post_compose(
            client,
            image=(sample_image_bytes, 'photo.png'),
            outputs=json.dumps(outputs),
            labels=json.dumps(['a', 'b', 'cat']),
        )
        assert response.status_code == 200

        models = response.get_json()['models']
        assert [m['model'] for m in models] == ['ssd', 'efficientdet']
        assert models[1]['detections'][0]['label'] == 'cat'

    def test_compose_no_placement_returns_422(self, client, sample_image_bytes):
        response = post_compose(
            client,
            image=(sample_image_bytes, 'photo.png'),
            tensors=json.dumps(FULL_FRAME_TENSORS),
        )
        assert response.status_code == 422

        data = response.get_json()
        assert data['error'] == 'No suitable placement found'
        assert data['placement'] is None
        assert data['models'][0]['detections'][0]['label'] == 'Unknown'

    def test_compose_missing_image_returns_400(self, client):
        response = post_compose(client, tensors=json.dumps(EMPTY_TENSORS))
        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_compose_unsupported_extension_returns_400(self, client, sample_image_bytes):
        response = post_compose(
            client,
            image=(sample_image_bytes, 'photo.gif'),
            tensors=json.dumps(EMPTY_TENSORS),
        )
        assert response.status_code == 400

    def test_compose_missing_outputs_returns_400(self, client, sample_image_bytes):
        response = post_compose(client, image=(sample_image_bytes, 'photo.png'))
        assert response.status_code == 400

    def test_compose_bad_json_returns_400(self, client, sample_image_bytes):
        response = post_compose(
            client,
            image=(sample_image_bytes, 'photo.png'),
            tensors='{not json',
        )
        assert response.status_code == 400
        assert 'tensors' in response.get_json()['error']

    def test_compose_undecodable_image_returns_400(self, client):
        from io import BytesIO

        response = post_compose(
            client,
            image=(BytesIO(b'definitely not a png'), 'photo.png'),
            tensors=json.dumps(EMPTY_TENSORS),
        )
        assert response.status_code == 400

    def test_compose_get_not_allowed(self, client):
        response = client.get('/api/compose')
        assert response.status_code == 405

    def test_compose_skips_malformed_tensors(self, client, sample_image_bytes):
        tensors = [{'index': 'boxes', 'data': [[[0.0, 0.0, 1.0, 1.0]]]}, [1, 2, 3]] + EMPTY_TENSORS
        response = post_compose(
            client,
            image=(sample_image_bytes, 'photo.png'),
            tensors=json.dumps(tensors),
        )
        assert response.status_code == 200
        assert response.get_json()['models'][0]['detections'] == []

    def test_compose_unreadable_label_table(self, client, app, sample_image_bytes, monkeypatch, tmp_path):
        config = dataclasses.replace(app.config['PLACEMENT'], labels_path=str(tmp_path / 'missing.txt'))
        monkeypatch.setitem(app.config, 'PLACEMENT', config)

        response = post_compose(
            client,
            image=(sample_image_bytes, 'photo.png'),
            tensors=json.dumps(FULL_FRAME_TENSORS),
        )
        assert response.status_code == 422
        assert response.get_json()['models'][0]['detections'][0]['label'] == 'Unknown'

    def test_compose_uses_configured_label_table(self, client, app, sample_image_bytes,
                                                 monkeypatch, labels_file):
        config = dataclasses.replace(app.config['PLACEMENT'], labels_path=labels_file)
        monkeypatch.setitem(app.config, 'PLACEMENT', config)

        response = post_compose(
            client,
            image=(sample_image_bytes, 'photo.png'),
            tensors=json.dumps(FULL_FRAME_TENSORS),
        )
        assert response.get_json()['models'][0]['detections'][0]['label'] == 'car'
