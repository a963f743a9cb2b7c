from fastapi.testclient import TestClient
import main as ai_main


def test_stream_answers_final_frames_only():
    client = TestClient(ai_main.app)
    with client.websocket_connect('/voice/stream') as ws:
        ws.send_json({'kind': 'partial', 'text': 'make a rubric'})
        ws.send_json({'kind': 'bogus'})
        ws.send_json({'kind': 'final', 'text': 'make a 4 point rubric for 7th grade history essays'})
        msg = ws.receive_json()
    assert msg['kind'] == 'analysis'
    analysis = msg['analysis']
    assert analysis['category'] == 'rubric'
    assert analysis['slots']['grade'] == '7th Grade'
    assert analysis['slots']['format'] == '4_point'


def test_stream_handles_several_utterances():
    client = TestClient(ai_main.app)
    with client.websocket_connect('/voice/stream') as ws:
        ws.send_json({'kind': 'final', 'text': 'exit ticket on addition for 2nd grade'})
        first = ws.receive_json()
        ws.send_json({'kind': 'final', 'text': 'a quiz on the solar system'})
        second = ws.receive_json()
    assert first['analysis']['resourceType'] == 'exit_slip'
    assert second['analysis']['resourceType'] == 'quiz'
    assert second['analysis']['slots']['subject'] == 'Science'


def test_stream_skips_non_json_frame():
    client = TestClient(ai_main.app)
    with client.websocket_connect('/voice/stream') as ws:
        ws.send_text('not json at all')
        ws.send_json({'kind': 'final', 'text': 'a quiz on fractions for 5th grade'})
        msg = ws.receive_json()
    assert msg['kind'] == 'analysis'
    assert msg['analysis']['resourceType'] == 'quiz'
    assert msg['analysis']['slots']['grade'] == '5th Grade'
