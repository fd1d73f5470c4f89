"""
Tests for distribution detection.
"""

from devenv_installer.lib.distro import detect_distro


class TestDetectDistro:
    def test_arch_release(self, sys_root, write_file):
        write_file(sys_root, "etc/arch-release", "")
        assert detect_distro(sys_root) == "arch"

    def test_os_release_id(self, sys_root, write_file):
        write_file(sys_root, "etc/os-release", 'NAME="Ubuntu"\nID=ubuntu\nVERSION_ID="24.04"\n')
        assert detect_distro(sys_root) == "ubuntu"

    def test_id_like(self, sys_root, write_file):
        write_file(sys_root, "etc/os-release", "ID=pop\nID_LIKE=\"ubuntu debian\"\n")
        assert detect_distro(sys_root) == "ubuntu"

    def test_endeavour_is_arch(self, sys_root, write_file):
        write_file(sys_root, "etc/os-release", "ID=endeavouros\nID_LIKE=arch\n")
        assert detect_distro(sys_root) == "arch"

    def test_lsb_release(self, sys_root, write_file):
        write_file(sys_root, "etc/lsb-release", "DISTRIB_ID=Ubuntu\n")
        assert detect_distro(sys_root) == "ubuntu"

    def test_unknown(self, sys_root, write_file):
        write_file(sys_root, "etc/os-release", "ID=fedora\n")
        assert detect_distro(sys_root) == "unknown"
