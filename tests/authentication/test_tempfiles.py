import gc
import os.path

from bcc._cogs.clients.auth import TempFiles


def test_created():
    tempfiles = TempFiles()
    path = tempfiles[b'-----BEGIN CERTIFICATE-----']
    assert os.path.isfile(path)
    with open(path, 'rb') as f:
        assert f.read() == b'-----BEGIN CERTIFICATE-----'


def test_reused():
    tempfiles = TempFiles()
    path1 = tempfiles[b'cert']
    path2 = tempfiles[b'cert']
    assert path1 == path2
    assert len(tempfiles) == 1


def test_purged():
    tempfiles = TempFiles()
    path1 = tempfiles[b'cert']
    path2 = tempfiles[b'key']
    assert list(tempfiles) == [b'cert', b'key']

    tempfiles.purge()

    assert not os.path.isfile(path1)
    assert not os.path.isfile(path2)
    assert len(tempfiles) == 0


def test_garbage_collected():
    tempfiles = TempFiles()
    path1 = tempfiles[b'cert']
    path2 = tempfiles[b'key']

    del tempfiles
    gc.collect()
    gc.collect()
    gc.collect()

    assert not os.path.isfile(path1)
    assert not os.path.isfile(path2)
