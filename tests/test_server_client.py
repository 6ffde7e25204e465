"""Unit tests for SplitStoreClient."""

import httpx
import pytest

from cli.server_client import SplitStoreClient, _filename_from_disposition


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr('cli.server_client.time.sleep', lambda seconds: None)


FILE_META = {
    'file_id': 7,
    'name': 'report.pdf',
    'size': 9,
    'created_at': '2024-01-01T00:00:00+00:00',
    'chunks': [
        {'bucket': 1, 'chunk_id': 'c-1', 'size': 3},
        {'bucket': 2, 'chunk_id': 'c-2', 'size': 3},
        {'bucket': 3, 'chunk_id': 'c-3', 'size': 3},
    ],
}


@pytest.fixture
def mock_transport_success():
    """Mock transport that returns successful responses."""
    def handler(request):
        if request.url.path == '/files' and request.method == 'POST':
            assert b'filename="test.txt"' in request.content
            return httpx.Response(201, json={
                'file_id': 7,
                'name': 'test.txt',
                'size': 26,
                'chunk_count': 3,
            })
        elif request.url.path == '/files' and request.method == 'GET':
            return httpx.Response(200, json={'files': [FILE_META]})
        elif request.url.path == '/files/7':
            return httpx.Response(200, json=FILE_META)
        elif request.url.path == '/files/7/download':
            return httpx.Response(
                200,
                content=b'ABCDEFGHI',
                headers={'Content-Disposition': 'attachment; filename="report.pdf"'},
            )

        return httpx.Response(404, json={'detail': 'File 8 not found', 'code': 'FILE_NOT_FOUND'})

    return httpx.MockTransport(handler)


@pytest.fixture
def client_with_mock(temp_config, mock_transport_success):
    return SplitStoreClient(temp_config, transport=mock_transport_success)


def test_upload_success(client_with_mock, sample_file):
    result = client_with_mock.upload(str(sample_file))

    assert 'Uploaded: test.txt' in result
    assert 'ID: 7' in result
    assert 'Chunks: 3' in result


def test_upload_missing_file(client_with_mock, tmp_path):
    result = client_with_mock.upload(str(tmp_path / 'nope.txt'))

    assert 'File not found' in result


def test_upload_directory(client_with_mock, tmp_path):
    assert 'Not a file' in client_with_mock.upload(str(tmp_path))


def test_upload_bucket_failure(temp_config, sample_file):
    def handler(request):
        return httpx.Response(503, json={'detail': 'bucket2 down', 'code': 'BUCKET_WRITE_FAILED'})

    client = SplitStoreClient(temp_config, transport=httpx.MockTransport(handler))

    result = client.upload(str(sample_file))

    assert 'Error uploading' in result
    assert 'Nothing was stored' in result


def test_list_files(client_with_mock):
    result = client_with_mock.list_files()

    assert 'Found 1 file(s)' in result
    assert '[7] report.pdf' in result
    assert '9 B' in result


def test_list_files_empty(temp_config):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={'files': []}))
    client = SplitStoreClient(temp_config, transport=transport)

    assert client.list_files() == 'No files stored yet.'


def test_file_info(client_with_mock):
    result = client_with_mock.file_info(7)

    assert 'File 7: report.pdf' in result
    assert 'bucket1: c-1 (3 bytes)' in result
    assert 'bucket3: c-3 (3 bytes)' in result


def test_file_info_not_found(client_with_mock):
    assert client_with_mock.file_info(8) == 'Error: File not found on server.'


def test_download_to_default_dir(client_with_mock, temp_config):
    result = client_with_mock.download(7)

    output = temp_config.get_download_dir() / 'report.pdf'
    assert 'Downloaded: report.pdf' in result
    assert output.read_bytes() == b'ABCDEFGHI'


def test_download_to_explicit_path(client_with_mock, tmp_path):
    target = tmp_path / 'copies' / 'copy.pdf'

    result = client_with_mock.download(7, str(target))

    assert 'Saved to' in result
    assert target.read_bytes() == b'ABCDEFGHI'


def test_download_into_directory(client_with_mock, tmp_path):
    client_with_mock.download(7, str(tmp_path))

    assert (tmp_path / 'report.pdf').read_bytes() == b'ABCDEFGHI'


def test_download_not_found(client_with_mock, temp_config):
    result = client_with_mock.download(8)

    assert result == 'Error: File not found on server.'
    assert not temp_config.get_download_dir().exists()


def test_download_keeps_non_ascii_filename(temp_config):
    def handler(request):
        return httpx.Response(
            200,
            content=b'CV',
            headers={
                'Content-Disposition': "attachment; filename=\"r?sum?.pdf\"; filename*=UTF-8''r%C3%A9sum%C3%A9.pdf",
            },
        )

    client = SplitStoreClient(temp_config, transport=httpx.MockTransport(handler))

    result = client.download(2)

    assert 'Downloaded: résumé.pdf' in result
    assert (temp_config.get_download_dir() / 'résumé.pdf').read_bytes() == b'CV'


@pytest.mark.parametrize('header, expected', [
    ('attachment; filename="report.pdf"', 'report.pdf'),
    ('attachment; filename="a;b.txt"', 'a;b.txt'),
    ("attachment; filename=\"_.txt\"; filename*=UTF-8''%E6%96%87%E4%BB%B6.txt", '文件.txt'),
    ("attachment; filename*=UTF-8''only%20star.bin", 'only star.bin'),
    ('attachment; filename="../../etc/passwd"', 'passwd'),
    ('attachment; filename="..\\\\evil.exe"', 'evil.exe'),
    ('attachment', 'file-1'),
    ('', 'file-1'),
])
def test_filename_from_disposition(header, expected):
    assert _filename_from_disposition(header, default='file-1') == expected


def test_download_truncated_is_discarded(temp_config):
    def handler(request):
        return httpx.Response(
            200,
            content=b'ABC',
            headers={
                'Content-Length': '9',
                'Content-Disposition': 'attachment; filename="short.bin"',
            },
        )

    client = SplitStoreClient(temp_config, transport=httpx.MockTransport(handler))

    result = client.download(1)

    assert 'truncated' in result
    assert '3 of 9 bytes' in result
    assert not (temp_config.get_download_dir() / 'short.bin').exists()


def test_retry_on_server_error(temp_config):
    """Test retry logic on 500 errors."""
    call_count = 0

    def failing_handler(request):
        nonlocal call_count
        call_count += 1
        if call_count < 3:
            return httpx.Response(500, json={'detail': 'Server error', 'code': 'INTERNAL_ERROR'})
        return httpx.Response(200, json={'files': []})

    client = SplitStoreClient(temp_config, transport=httpx.MockTransport(failing_handler))

    client.list_files()

    assert call_count == 3


def test_retries_exhausted_reports_error(temp_config):
    temp_config.data['max_retries'] = 1
    transport = httpx.MockTransport(
        lambda request: httpx.Response(503, json={'detail': 'x', 'code': 'BUCKET_READ_FAILED'})
    )
    client = SplitStoreClient(temp_config, transport=transport)

    assert 'could not return its chunk' in client.file_info(1)


def test_no_retry_on_client_error(temp_config):
    """Test no retry on 4xx errors."""
    call_count = 0

    def error_handler(request):
        nonlocal call_count
        call_count += 1
        return httpx.Response(404, json={'detail': 'missing', 'code': 'FILE_NOT_FOUND'})

    client = SplitStoreClient(temp_config, transport=httpx.MockTransport(error_handler))

    client.file_info(3)

    assert call_count == 1


def test_connection_error_handling(temp_config):
    """Test connection error handling."""
    def failing_handler(request):
        raise httpx.ConnectError("Connection refused")

    temp_config.data['max_retries'] = 1
    client = SplitStoreClient(temp_config, transport=httpx.MockTransport(failing_handler))

    assert 'Cannot connect to file server' in client.list_files()
    assert 'Cannot connect to file server' in client.download(1)


def test_close_session(client_with_mock):
    client_with_mock.close()
    assert client_with_mock.session.is_closed
