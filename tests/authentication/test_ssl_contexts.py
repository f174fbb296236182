import ssl

import pytest

from bcc import ClientSettings, ConnectionInfo, IdentitySettings, LoginError
from bcc._cogs.clients.auth import TempFiles, make_headers, make_ssl_context


@pytest.fixture()
def tempfiles():
    tempfiles = TempFiles()
    yield tempfiles
    tempfiles.purge()


def test_default_context_verifies_the_server(tempfiles):
    info = ConnectionInfo(token='fake-token')
    context = make_ssl_context(info, tempfiles=tempfiles)
    assert context.verify_mode == ssl.CERT_REQUIRED
    assert context.check_hostname
    assert context.minimum_version == ssl.TLSVersion.TLSv1_2


def test_insecure_context_verifies_nothing(tempfiles):
    info = ConnectionInfo(token='fake-token', insecure=True)
    context = make_ssl_context(info, tempfiles=tempfiles)
    assert context.verify_mode == ssl.CERT_NONE
    assert not context.check_hostname


@pytest.mark.parametrize('kwargs', [
    pytest.param(dict(ca_path='/ca.pem', ca_data=b'ca'), id='ca-twice'),
    pytest.param(dict(certificate_path='/c.pem', certificate_data=b'c',
                      private_key_path='/k.pem', ca_path='/ca.pem'), id='certificate-twice'),
    pytest.param(dict(certificate_path='/c.pem', private_key_path='/k.pem',
                      private_key_data=b'k', ca_path='/ca.pem'), id='key-twice'),
    pytest.param(dict(certificate_path='/c.pem', ca_path='/ca.pem'), id='certificate-without-key'),
    pytest.param(dict(private_key_data=b'k', ca_path='/ca.pem'), id='key-without-certificate'),
    pytest.param(dict(certificate_data=b'c', private_key_data=b'k'), id='certificate-without-ca'),
])
def test_inconsistent_certificates(tempfiles, kwargs):
    info = ConnectionInfo(token='fake-token', **kwargs)
    with pytest.raises(LoginError):
        make_ssl_context(info, tempfiles=tempfiles)
    assert len(tempfiles) == 0


def test_unreadable_ca_data(tempfiles):
    info = ConnectionInfo(token='fake-token', ca_data=b'not a certificate')
    with pytest.raises(LoginError) as err:
        make_ssl_context(info, tempfiles=tempfiles)
    assert err.value.__cause__ is not None


def test_absent_ca_file(tempfiles, tmp_path):
    info = ConnectionInfo(token='fake-token', ca_path=str(tmp_path / 'absent.pem'))
    with pytest.raises(LoginError) as err:
        make_ssl_context(info, tempfiles=tempfiles)
    assert isinstance(err.value.__cause__, OSError)


def test_default_headers():
    headers = make_headers(ClientSettings())
    assert headers['User-Agent'].startswith('bcc-python/')
    assert 'X-Client-Id' not in headers


def test_custom_headers():
    settings = ClientSettings(identity=IdentitySettings(user_agent='my-tool/1.0', client_id='robot-7'))
    headers = make_headers(settings)
    assert headers == {'User-Agent': 'my-tool/1.0', 'X-Client-Id': 'robot-7'}


def test_token_is_never_shown():
    info = ConnectionInfo(token='secret-token', server='https://fake-host')
    assert 'secret-token' not in repr(info)
    assert 'https://fake-host' in repr(info)
