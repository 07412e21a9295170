"""
pfSense MCP Server - Web Console Constants

This module contains the administrative page paths, form markers and phrases of
the pfSense web console used throughout the server. All paths are relative to
the configured base URL.
"""

# Login
PAGE_INDEX = "/"
LOGIN_FORM_FIELD = "usernamefld"
LOGIN_PASSWORD_FIELD = "passwordfld"
LOGIN_SUBMIT_VALUE = "Sign In"
LOGIN_FAILURE_PHRASE = "Username or Password incorrect"

# Anti-forgery token and form feedback
CSRF_FAILURE_PHRASE = "CSRF check failed"
VALIDATION_ERROR_HEADING = "input errors"

# Diagnostics
PAGE_DIAG_COMMAND = "/diag_command.php"
PAGE_DIAG_EDIT = "/diag_edit.php"
SCRIPT_SUBMIT_PHP = "EXECPHP"
SCRIPT_SUBMIT_SHELL = "EXEC"
SCRIPT_ERROR_MARKERS = ("PHP ERROR", "Parse error", "Fatal error")

# System
PAGE_PKG_MGR_INSTALL = "/pkg_mgr_install.php"

# Firewall aliases and filter
PAGE_FIREWALL_ALIASES = "/firewall_aliases.php"
PAGE_FIREWALL_ALIASES_EDIT = "/firewall_aliases_edit.php"
PAGE_STATUS_FILTER_RELOAD = "/status_filter_reload.php"
ALIAS_ADDRESS_SEP = " "
ALIAS_DETAIL_SEP = "||"
IP_ALIAS_TYPES = ("host", "network")
PORT_ALIAS_TYPES = ("port",)

# DNS resolver (unbound)
PAGE_UNBOUND = "/services_unbound.php"
PAGE_UNBOUND_DOMAIN_OVERRIDE_EDIT = "/services_unbound_domainoverride_edit.php"
PAGE_UNBOUND_HOST_OVERRIDE_EDIT = "/services_unbound_host_edit.php"
DEFAULT_DNS_PORT = 53
DEFAULT_TLS_DNS_PORT = 853
DOMAIN_OVERRIDE_PORT_SEP = "@"
HOST_OVERRIDE_ADDRESS_SEP = ","
CONFIG_FILE_DIR = "/var/unbound/conf.d"
CONFIG_FILE_EXT = "conf"

# DHCPv4 server
PAGE_DHCP = "/services_dhcp.php"
PAGE_DHCP_EDIT = "/services_dhcp_edit.php"
DOMAIN_SEARCH_LIST_SEP = ";"

# Apply buttons
APPLY_CHANGES_VALUE = "Apply Changes"
RELOAD_FILTER_VALUE = "Reload Filter"
SAVE_VALUE = "Save"
