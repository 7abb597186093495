#!/usr/bin/env python3
"""
Tests for the RTSP control channel against a loopback stub server
"""

import pytest

from rtsp_client import (
    ControlChannel, ProtocolError, RTSPConnectionError, RTSPRequest, TransportError
)


@pytest.fixture
def channel(rtsp_server):
    channel = ControlChannel(connect_timeout=2.0)
    channel.open(rtsp_server.host, rtsp_server.port)
    yield channel
    channel.close()


class TestControlChannel:

    def test_connection_refused(self, refused_port):
        channel = ControlChannel(connect_timeout=2.0)
        with pytest.raises(RTSPConnectionError) as excinfo:
            channel.open('127.0.0.1', refused_port)

        assert isinstance(excinfo.value, ConnectionError)
        assert not channel.is_open

    def test_cseq_starts_at_one_and_increments(self, channel, rtsp_server):
        for method in ('SETUP', 'PLAY', 'PAUSE'):
            channel.exchange(RTSPRequest(method, 'clip', channel.next_cseq()))

        assert [h['CSeq'] for _, _, h in rtsp_server.requests] == ['1', '2', '3']
        assert channel.last_cseq == 3

    def test_exchange_returns_response(self, channel, rtsp_server):
        response = channel.exchange(
            RTSPRequest('SETUP', 'clip', channel.next_cseq(), client_port=4000))

        assert response.ok
        assert response.session_id == rtsp_server.session_id
        method, resource, headers = rtsp_server.requests[0]
        assert (method, resource) == ('SETUP', 'clip')
        assert headers['Transport'] == 'RTP/UDP; client_port= 4000'

    def test_send_then_receive(self, channel):
        channel.send(RTSPRequest('PLAY', 'clip', channel.next_cseq(), session_id='1'))
        response = channel.receive_response()
        assert response.cseq == 1

    def test_cseq_mismatch(self, channel, rtsp_server):
        rtsp_server.cseq_offset = 5
        with pytest.raises(ProtocolError):
            channel.exchange(RTSPRequest('PLAY', 'clip', channel.next_cseq()))

    def test_malformed_reply(self, channel, rtsp_server):
        rtsp_server.raw_replies['PLAY'] = b"NOT RTSP\r\n\r\n"
        with pytest.raises(ProtocolError):
            channel.exchange(RTSPRequest('PLAY', 'clip', channel.next_cseq()))

    def test_server_hangs_up(self, channel, rtsp_server):
        rtsp_server.disconnect_on.add('PLAY')
        with pytest.raises(TransportError) as excinfo:
            channel.exchange(RTSPRequest('PLAY', 'clip', channel.next_cseq()))
        assert isinstance(excinfo.value, IOError)

    def test_close_is_idempotent(self, channel):
        channel.close()
        channel.close()
        assert not channel.is_open

    def test_use_after_close(self, channel):
        channel.close()
        with pytest.raises(TransportError):
            channel.send(RTSPRequest('PLAY', 'clip', channel.next_cseq()))
        with pytest.raises(TransportError):
            channel.receive_response()
