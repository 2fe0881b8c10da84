#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import copy
import importlib
import inspect
import os
import textwrap

from fcgiworker import util

KNOWN_SETTINGS = []


def wrap_method(func):
    def _wrapped(instance, *args, **kwargs):
        return func(*args, **kwargs)
    return _wrapped


def make_settings(ignore=None):
    settings = {}
    ignore = ignore or ()
    for s in KNOWN_SETTINGS:
        setting = s()
        if setting.name in ignore:
            continue
        settings[setting.name] = setting.copy()
    return settings


class Config(object):

    def __init__(self, **kwargs):
        self.settings = make_settings()
        for name, value in kwargs.items():
            self.set(name, value)

    def __str__(self):
        lines = []
        kmax = max(len(k) for k in self.settings)
        for k in sorted(self.settings):
            v = self.settings[k].value
            if callable(v):
                v = "<{}()>".format(v.__qualname__)
            lines.append("{k:{kmax}} = {v}".format(k=k, v=v, kmax=kmax))
        return "\n".join(lines)

    def __getattr__(self, name):
        if name not in self.settings:
            raise AttributeError("No configuration setting for: %s" % name)
        return self.settings[name].get()

    def __setattr__(self, name, value):
        if name != "settings" and name in self.settings:
            raise AttributeError("Invalid access!")
        super().__setattr__(name, value)

    def set(self, name, value):
        if name not in self.settings:
            raise AttributeError("No configuration setting for: %s" % name)
        self.settings[name].set(value)

    @property
    def waiter_class(self):
        uri = self.settings['waiter'].get()
        waiter_class = util.load_class(uri)
        if hasattr(waiter_class, "setup"):
            waiter_class.setup()
        return waiter_class

    @property
    def address(self):
        """Parsed ``bind`` address, or None when the inherited socket is used."""
        bind = self.settings['bind'].get()
        if bind is None:
            return None
        return util.parse_address(util.to_bytestring(bind))

    @property
    def logger_class(self):
        uri = self.settings['logger_class'].get()
        logger_class = util.load_class(uri, default="simple",
                                       section="fcgiworker.loggers")

        if hasattr(logger_class, "install"):
            logger_class.install()
        return logger_class


class SettingMeta(type):
    def __new__(cls, name, bases, attrs):
        super_new = super().__new__
        parents = [b for b in bases if isinstance(b, SettingMeta)]
        if not parents:
            return super_new(cls, name, bases, attrs)

        attrs["order"] = len(KNOWN_SETTINGS)
        attrs["validator"] = wrap_method(attrs["validator"])

        new_class = super_new(cls, name, bases, attrs)
        new_class.fmt_desc(attrs.get("desc", ""))
        KNOWN_SETTINGS.append(new_class)
        return new_class

    def fmt_desc(cls, desc):
        desc = textwrap.dedent(desc).strip()
        setattr(cls, "desc", desc)
        setattr(cls, "short", desc.splitlines()[0])


class Setting(object):
    name = None
    value = None
    section = None
    validator = None
    type = None
    meta = None
    default = None
    short = None
    desc = None

    def __init__(self):
        if self.default is not None:
            self.set(self.default)

    def copy(self):
        return copy.copy(self)

    def get(self):
        return self.value

    def set(self, val):
        if not callable(self.validator):
            raise TypeError('Invalid validator: %s' % self.name)
        self.value = self.validator(val)

    def __lt__(self, other):
        return (self.section == other.section and
                self.order < other.order)

    def __repr__(self):
        return "<%s.%s object at %x with value %r>" % (
            self.__class__.__module__,
            self.__class__.__name__,
            id(self),
            self.value,
        )


Setting = SettingMeta('Setting', (Setting,), {})


def validate_pos_int(val):
    if not isinstance(val, int):
        val = int(val, 0)
    else:
        # Booleans are ints!
        val = int(val)
    if val < 0:
        raise ValueError("Value must be positive: %s" % val)
    return val


def validate_nonzero_int(val):
    val = validate_pos_int(val)
    if val == 0:
        raise ValueError("Value must be greater than zero: %s" % val)
    return val


def validate_string(val):
    if val is None:
        return None
    if not isinstance(val, str):
        raise TypeError("Not a string: %s" % val)
    return val.strip()


def validate_separator(val):
    # separators are written as-is, whitespace included
    if val is None:
        return None
    if not isinstance(val, (str, bytes)):
        raise TypeError("Not a string: %s" % val)
    return val


def validate_list_string(val):
    if not val:
        return []

    # legacy syntax
    if isinstance(val, str):
        val = val.split(",")

    return [v.strip() for v in val if v.strip()]


def validate_encoding(val):
    val = validate_string(val)
    try:
        "".encode(val)
    except LookupError:
        raise ValueError("Unknown encoding: %s" % val)
    return val


def validate_loglevel(val):
    val = validate_string(val)
    if val.lower() not in ("debug", "info", "warning", "error", "critical"):
        raise ValueError("Invalid log level: %s" % val)
    return val


def validate_class(val):
    if inspect.isfunction(val) or inspect.ismethod(val):
        val = val()
    if inspect.isclass(val):
        return val
    return validate_string(val)


def validate_callable(arity):
    def _validate_callable(val):
        if isinstance(val, str):
            try:
                mod_name, obj_name = val.rsplit(".", 1)
            except ValueError:
                raise TypeError("Value '%s' is not import string. "
                                "Format: module[.submodules...].object" % val)
            try:
                mod = importlib.import_module(mod_name)
                val = getattr(mod, obj_name)
            except ImportError as e:
                raise TypeError(str(e))
            except AttributeError:
                raise TypeError("Can not load '%s' from '%s'"
                                "" % (obj_name, mod_name))
        if not callable(val):
            raise TypeError("Value is not callable: %s" % val)
        if arity != -1 and arity != util.get_arity(val):
            raise TypeError("Value must have an arity of: %s" % arity)
        return val
    return _validate_callable


class Bind(Setting):
    name = "bind"
    section = "Listen Socket"
    meta = "ADDRESS"
    validator = validate_string
    default = None
    desc = """\
        The socket to bind instead of the inherited listen socket.

        A string of the form: 'HOST', 'HOST:PORT', '[IPV6]:PORT',
        'unix:PATH' or 'fd://FD'. An IP is a valid HOST. The default port
        is 9000.

        When unset the process serves the socket the web server handed
        over as ``listen_fd`` (or the systemd activation socket).
        """


class ListenFd(Setting):
    name = "listen_fd"
    section = "Listen Socket"
    meta = "INT"
    validator = validate_pos_int
    type = int
    default = 0
    desc = """\
        The inherited listen descriptor.

        FastCGI web servers start the application with the listen socket
        on descriptor 0 (``FCGI_LISTENSOCK_FILENO``).
        """


class Backlog(Setting):
    name = "backlog"
    section = "Listen Socket"
    meta = "INT"
    validator = validate_pos_int
    type = int
    default = 5
    desc = """\
        The maximum number of pending connections on a bound socket.

        Only used together with ``bind``.
        """


class WebServerAddrs(Setting):
    name = "web_server_addrs"
    section = "Listen Socket"
    meta = "ADDRS"
    validator = validate_list_string
    default = os.environ.get("FCGI_WEB_SERVER_ADDRS", "")
    desc = """\
        Web server addresses allowed to connect.

        A comma separated list of IP addresses. Connections from other
        peers are closed right after accept. An empty list allows every
        peer. Defaults to the value of ``FCGI_WEB_SERVER_ADDRS``.
        """


class Waiter(Setting):
    name = "waiter"
    section = "Accept Loop"
    meta = "STRING"
    validator = validate_class
    default = "sync"
    desc = """\
        How the acceptor waits for the listen socket to become readable.

        A string referring to one of the following bundled waiters:

        * ``sync`` - ``select.select``
        * ``gevent`` - ``gevent.socket.wait_read``, yields to other
          greenlets. Requires gevent 1.4 or higher.

        Optionally a dotted path to a subclass of
        ``fcgiworker.waiters.base.Waiter``.
        """


class LimitRequestParams(Setting):
    name = "limit_request_params"
    section = "Security"
    meta = "INT"
    validator = validate_pos_int
    type = int
    default = 1000
    desc = """\
        Limit the number of parameters in a request.

        A request carrying more parameters is refused as a parameter
        error. This parameter is used to limit the number of parameters
        in a request to prevent DDOS attack.
        """


class LimitRequestParamsSize(Setting):
    name = "limit_request_params_size"
    section = "Security"
    meta = "INT"
    validator = validate_pos_int
    type = int
    default = 1048576
    desc = """\
        Limit the size in bytes of the parameter block of a request.

        PARAMS content beyond this size is refused as a parameter error
        before it is decoded. Value is a positive number or 0. Setting
        it to 0 allows an unlimited parameter block.
        """


class OutputBufferSize(Setting):
    name = "output_buffer_size"
    section = "Streams"
    meta = "INT"
    validator = validate_nonzero_int
    type = int
    default = 8192
    desc = """\
        Bytes buffered per output stream before a record is sent.
        """


class ReadChunkSize(Setting):
    name = "read_chunk_size"
    section = "Streams"
    meta = "INT"
    validator = validate_nonzero_int
    type = int
    default = util.CHUNK_SIZE
    desc = """\
        Chunk size used by ``Stream.read()`` without a size.
        """


class StreamEncoding(Setting):
    name = "stream_encoding"
    section = "Streams"
    meta = "STRING"
    validator = validate_encoding
    default = "utf-8"
    desc = """\
        Encoding used for ``str`` values written to a stream.
        """


class OutputFieldSeparator(Setting):
    name = "output_field_separator"
    section = "Streams"
    meta = "STRING"
    validator = validate_separator
    default = None
    desc = """\
        Separator written between the values passed to ``Stream.print``.
        """


class OutputRecordSeparator(Setting):
    name = "output_record_separator"
    section = "Streams"
    meta = "STRING"
    validator = validate_separator
    default = None
    desc = """\
        Separator written after the values passed to ``Stream.print``.
        """


class AccessLog(Setting):
    name = "accesslog"
    section = "Logging"
    meta = "FILE"
    validator = validate_string
    default = None
    desc = """\
        The Access log file to write to.

        ``'-'`` means log to stderr. Stdout carries responses in CGI mode
        and is never used for logging.
        """


class AccessLogFormat(Setting):
    name = "access_log_format"
    section = "Logging"
    meta = "STRING"
    validator = validate_string
    default = '%(h)s %(i)s "%(r)s" %(b)s %(D)s'
    desc = """\
        The access log format.

        ===========  ===========
        Identifier   Description
        ===========  ===========
        h            remote address
        i            FastCGI request id
        t            date of the request
        r            request line (ex: GET /test HTTP/1.1)
        m            request method
        U            URL path without query string
        q            query string
        H            protocol
        b            bytes written to stdout
        T            request time in seconds
        M            request time in milliseconds
        D            request time in microseconds
        p            process ID
        {var}e       environment entry
        ===========  ===========
        """


class ErrorLog(Setting):
    name = "errorlog"
    section = "Logging"
    meta = "FILE"
    validator = validate_string
    default = '-'
    desc = """\
        The Error log file to write to.

        Using ``'-'`` for FILE makes fcgiworker log to stderr.
        """


class Loglevel(Setting):
    name = "loglevel"
    section = "Logging"
    meta = "LEVEL"
    validator = validate_loglevel
    default = "info"
    desc = """\
        The granularity of Error log outputs.

        Valid level names are:

        * ``'debug'``
        * ``'info'``
        * ``'warning'``
        * ``'error'``
        * ``'critical'``
        """


class LoggerClass(Setting):
    name = "logger_class"
    section = "Logging"
    meta = "STRING"
    validator = validate_class
    default = "fcgiworker.glogging.Logger"
    desc = """\
        The logger you want to use to log events in fcgiworker.

        The default class (``fcgiworker.glogging.Logger``) handles most
        normal usages in logging. It provides error and access logging.

        You can provide your own logger by giving fcgiworker a Python path
        to a class that quacks like ``fcgiworker.glogging.Logger``.
        """


class LogConfig(Setting):
    name = "logconfig"
    section = "Logging"
    meta = "FILE"
    validator = validate_string
    default = None
    desc = """\
        The log config file to use.

        Gives you more control over logging. It uses the standard Python
        logging module's configuration file format.
        """


class PreRequest(Setting):
    name = "pre_request"
    section = "Server Hooks"
    validator = validate_callable(2)
    type = callable

    def pre_request(acceptor, req):
        acceptor.log.debug("%s %s", req.environ.get("REQUEST_METHOD", "-"),
                           req.environ.get("REQUEST_URI", "-"))
    default = staticmethod(pre_request)
    desc = """\
        Called just before a request is handed to the handler.

        The callable needs to accept two instance variables for the
        Acceptor and the Request.
        """


class PostRequest(Setting):
    name = "post_request"
    section = "Server Hooks"
    validator = validate_callable(2)
    type = callable

    def post_request(acceptor, req):
        pass
    default = staticmethod(post_request)
    desc = """\
        Called after the handler returned.

        The callable needs to accept two instance variables for the
        Acceptor and the Request. The request may already be finished.
        """
