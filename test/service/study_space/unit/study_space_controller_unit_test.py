"""
Unit tests for the study space HTTP surface

The app lifespan mounts the reconciler against an in-memory seat store
injected through the DI container.
"""

from dependency_injector import providers
from fastapi.testclient import TestClient
import pytest

from src.main import app
from src.platform.config.di import container
from src.service.study_space.driven_adapter.file_watch_list_storage import FileWatchListStorage


pytestmark = pytest.mark.unit

API = '/api/study_space'


@pytest.fixture
def client(tmp_path, seat_store):
    watch_storage = FileWatchListStorage(
        path=tmp_path / 'study_space.json', namespace='lrc_notify_list'
    )
    container.reset_singletons()
    with (
        container.seat_store.override(providers.Object(seat_store)),
        container.watch_list_storage.override(providers.Object(watch_storage)),
    ):
        with TestClient(app) as test_client:
            yield test_client
    container.reset_singletons()


class TestHealth:
    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'


class TestSeatMap:
    def test_state_after_mount(self, client):
        response = client.get(f'{API}/state')

        assert response.status_code == 200
        body = response.json()
        assert body['loading'] is False
        assert body['sync_error'] is None
        assert body['selected_seat'] is None
        assert len(body['seats']) == 10
        assert body['seats']['I-8']['status'] == 'Occupied'
        assert body['seats']['I-1']['type'] == 'Individual Study Area'

    def test_stats(self, client):
        response = client.get(f'{API}/stats')

        assert response.json() == {'total': 10, 'occupied': 3, 'available': 7, 'percent': 30}

    def test_unknown_seat_is_404(self, client):
        response = client.get(f'{API}/seats/I-99')

        assert response.status_code == 404


class TestSelection:
    def test_select_and_clear(self, client):
        response = client.post(f'{API}/seats/I-2/select')

        assert response.status_code == 200
        assert response.json()['id'] == 'I-2'
        assert client.get(f'{API}/state').json()['selected_seat']['id'] == 'I-2'

        assert client.delete(f'{API}/selection').status_code == 204
        assert client.get(f'{API}/state').json()['selected_seat'] is None

    def test_select_unknown_seat_uses_metadata(self, client):
        response = client.post(f'{API}/seats/GT-L3-S4/select')

        body = response.json()
        assert body['status'] == 'Available'
        assert body['type'] == 'Group Table Seat'
        assert body['parent'] == 'GT-L3'


class TestBooking:
    def test_book_selected_seat(self, client, seat_store, user_id):
        client.post(f'{API}/seats/I-1/select')

        response = client.post(f'{API}/book', json={'duration_minutes': 30})

        assert response.status_code == 201
        body = response.json()
        assert body['success'] is True
        assert body['seat']['status'] == 'Occupied'
        assert body['seat']['booked_by'] == user_id
        assert seat_store.get('I-1').is_occupied

        state = client.get(f'{API}/state').json()
        assert state['selected_seat'] is None
        assert state['stats']['occupied'] == 4

        titles = [n['title'] for n in client.get(f'{API}/notifications').json()]
        assert 'Seat booked' in titles

    def test_book_uses_default_duration(self, client):
        client.post(f'{API}/seats/I-1/select')

        response = client.post(f'{API}/book', json={})

        assert response.status_code == 201
        assert response.json()['seat']['vacant_at'] is not None

    def test_book_without_selection(self, client, seat_store):
        response = client.post(f'{API}/book', json={'duration_minutes': 30})

        assert response.status_code == 400
        assert response.json()['error'] == 'SeatNotSelectedError'
        assert seat_store.commit_count == 0

    def test_book_occupied_seat_conflicts(self, client):
        client.post(f'{API}/seats/I-8/select')

        response = client.post(f'{API}/book', json={'duration_minutes': 30})

        assert response.status_code == 409
        assert response.json()['detail'] == 'Seat I-8 is already occupied'

    def test_book_signed_out_is_401(self, seat_store, tmp_path):
        seat_store.sign_in(None)
        watch_storage = FileWatchListStorage(path=tmp_path / 'w.json', namespace='lrc_notify_list')
        container.reset_singletons()
        with (
            container.seat_store.override(providers.Object(seat_store)),
            container.watch_list_storage.override(providers.Object(watch_storage)),
        ):
            with TestClient(app) as client:
                client.post(f'{API}/seats/I-1/select')

                response = client.post(f'{API}/book', json={'duration_minutes': 30})

        container.reset_singletons()
        assert response.status_code == 401
        assert response.json()['error'] == 'UnauthenticatedError'

    def test_commit_failure_is_409_and_rolled_back(self, client, seat_store):
        seat_store.fail_next_commit('Network request failed')
        client.post(f'{API}/seats/I-1/select')

        response = client.post(f'{API}/book', json={'duration_minutes': 30})

        assert response.status_code == 409
        assert response.json()['error'] == 'BookingFailedError'
        assert client.get(f'{API}/seats/I-1').json()['status'] == 'Available'

    def test_non_positive_duration_is_rejected(self, client):
        client.post(f'{API}/seats/I-1/select')

        response = client.post(f'{API}/book', json={'duration_minutes': 0})

        assert response.status_code == 400


class TestWatchList:
    def test_watch_selected_seat_twice(self, client):
        client.post(f'{API}/seats/I-8/select')

        first = client.post(f'{API}/watch').json()
        second = client.post(f'{API}/watch').json()

        assert first == {'seat_id': 'I-8', 'added': True, 'watching': ['I-8']}
        assert second['added'] is False
        assert client.get(f'{API}/watch').json() == ['I-8']

    def test_watch_without_selection(self, client):
        response = client.post(f'{API}/watch')

        assert response.status_code == 400

    def test_unwatch(self, client):
        client.post(f'{API}/seats/I-8/select')
        client.post(f'{API}/watch')

        response = client.delete(f'{API}/watch/I-8')

        assert response.json() == {'seat_id': 'I-8', 'removed': True, 'watching': []}
        assert client.delete(f'{API}/watch/I-8').json()['removed'] is False
