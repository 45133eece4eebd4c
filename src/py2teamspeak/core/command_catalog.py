"""
Catalog of ServerQuery command names.

Used only to generate convenience shortcuts (``client.api.serverlist()``).
Any command, listed or not, can be sent with ``QueryClient.send``.
"""

from typing import FrozenSet

QUERY_COMMANDS: FrozenSet[str] = frozenset({
    # Session
    'help', 'quit', 'login', 'logout', 'version', 'hostinfo', 'instanceinfo',
    'instanceedit', 'bindinglist', 'use', 'whoami', 'clientupdate',

    # Servers
    'serverlist', 'serveridgetbyport', 'serverdelete', 'servercreate',
    'serverstart', 'serverstop', 'serverprocessstop', 'serverinfo',
    'serverrequestconnectioninfo', 'servertemppasswordadd',
    'servertemppassworddel', 'servertemppasswordlist', 'serveredit',
    'servergrouplist', 'servergroupadd', 'servergroupdel', 'servergroupcopy',
    'servergrouprename', 'servergrouppermlist', 'servergroupaddperm',
    'servergroupdelperm', 'servergroupaddclient', 'servergroupdelclient',
    'servergroupclientlist', 'servergroupsbyclientid',
    'servergroupautoaddperm', 'servergroupautodelperm',
    'serversnapshotcreate', 'serversnapshotdeploy',
    'servernotifyregister', 'servernotifyunregister',

    # Messages
    'sendtextmessage', 'logview', 'logadd', 'gm',

    # Channels
    'channellist', 'channelinfo', 'channelfind', 'channelmove',
    'channelcreate', 'channeldelete', 'channeledit',
    'channelgrouplist', 'channelgroupadd', 'channelgroupdel',
    'channelgroupcopy', 'channelgrouprename', 'channelgroupaddperm',
    'channelgrouppermlist', 'channelgroupdelperm', 'channelgroupclientlist',
    'setclientchannelgroup', 'channelpermlist', 'channeladdperm',
    'channeldelperm',

    # Clients
    'clientlist', 'clientinfo', 'clientfind', 'clientedit', 'clientdblist',
    'clientdbinfo', 'clientdbfind', 'clientdbedit', 'clientdbdelete',
    'clientgetids', 'clientgetdbidfromuid', 'clientgetnamefromuid',
    'clientgetnamefromdbid', 'clientsetserverquerylogin', 'clientmove',
    'clientkick', 'clientpoke', 'clientpermlist', 'clientaddperm',
    'clientdelperm', 'channelclientpermlist', 'channelclientaddperm',
    'channelclientdelperm',

    # Permissions
    'permissionlist', 'permidgetbyname', 'permoverview', 'permget',
    'permfind', 'permreset', 'privilegekeylist', 'privilegekeyadd',
    'privilegekeydelete', 'privilegekeyuse',

    # Offline messages
    'messagelist', 'messageadd', 'messagedel', 'messageget',
    'messageupdateflag',

    # Complaints and bans
    'complainlist', 'complainadd', 'complaindelall', 'complaindel',
    'banclient', 'banlist', 'banadd', 'bandel', 'bandelall',

    # File transfer
    'ftinitupload', 'ftinitdownload', 'ftlist', 'ftgetfilelist',
    'ftgetfileinfo', 'ftstop', 'ftdeletefile', 'ftcreatedir', 'ftrenamefile',

    # Custom properties
    'customsearch', 'custominfo',

    # API keys
    'apikeyadd', 'apikeydel', 'apikeylist',
})


def is_known_command(name: str) -> bool:
    return name in QUERY_COMMANDS
