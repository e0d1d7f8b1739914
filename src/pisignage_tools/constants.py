# Fallback server used when --server is not given
SERVER_URL_DEFAULT = "https://digiddpm.com"

# Hostname applied on first boot: pisignage-<last six serial characters>
HOSTNAME_PREFIX = "pisignage-"
HOSTNAME_SERIAL_CHARS = 6

# Lines that must be present in the boot config for HDMI audio
HDMI_BOOT_SETTINGS = ("hdmi_drive=2", "hdmi_force_hotplug=1")

# numid=3 is the output routing control on the Pi firmware driver, 2 = HDMI
MIXER_COMMAND = ["amixer", "cset", "numid=3", "2"]

# Keys rewritten in the mandatory player config files
PACKAGE_SERVER_KEYS = ("config_server", "media_server")
SETTINGS_SERVER_KEYS = ("server",)

# Keys rewritten in the optional fallback config files
EXTENDED_SERVER_KEYS = (
    "server",
    "serverUrl",
    "serverURL",
    "serverAddress",
    "serverIp",
    "serverIP",
    "config_server",
    "media_server",
)

# Environment variable read by the first-boot routine
SET_HOSTNAME_ENV = "SET_HOSTNAME_ON_FIRSTBOOT"
