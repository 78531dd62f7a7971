"""Browser helper served at ``<path>/client.js``.

Usage from a page::

    <script src="/api/client.js"></script>
    <script>
      var api = objrpc("/api");
      api.onReady(function (error) {
        api.half(10, function (result, error) { ... });
      });
    </script>

``api.name(callback)`` calls a function that takes no argument.  Remote
functions named like the helper's own members (``RESERVED_NAMES``) are not
mirrored.
"""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import Response

RESERVED_NAMES = ("ready", "onReady")

JS_CODE = r"""function objrpc(url) {
  var api = { ready: false };
  var listeners = [];
  var loadError = null;
  var loaded = false;

  var post = function (func, param, callback) {
    var body = "func=" + encodeURIComponent(func);
    if (typeof param !== "undefined") {
      body += "&param=" + encodeURIComponent(JSON.stringify(param));
    }
    var xhr = new XMLHttpRequest();
    xhr.onreadystatechange = function () {
      if (xhr.readyState !== 4) {
        return;
      }
      if (xhr.status !== 200) {
        callback(null, "Bad response status: " + xhr.status);
        return;
      }
      if (xhr.responseText === "") {
        callback(null, null);
        return;
      }
      var data;
      try {
        data = JSON.parse(xhr.responseText);
      } catch (e) {
        callback(null, "Bad response: " + e);
        return;
      }
      if (data !== null && typeof data === "object" && !Array.isArray(data) &&
          Object.keys(data).length === 1 && typeof data.error === "string") {
        callback(null, data.error);
        return;
      }
      callback(data, null);
    };
    xhr.open("POST", url, true);
    xhr.setRequestHeader("Content-Type", "application/x-www-form-urlencoded");
    xhr.send(body);
  };

  var caller = function (name) {
    return function (param, callback) {
      if (arguments.length === 1 && typeof param === "function") {
        callback = param;
        param = undefined;
      }
      post(name, param, callback || function (data, error) {
        if (error) {
          throw error;
        }
      });
    };
  };

  var finish = function (error) {
    loaded = true;
    loadError = error;
    api.ready = !error;
    for (var i = 0; i < listeners.length; i++) {
      listeners[i](error);
    }
    listeners = [];
  };

  api.onReady = function (callback) {
    if (loaded) {
      callback(loadError);
    } else {
      listeners.push(callback);
    }
  };

  post("funcs", undefined, function (names, error) {
    if (error) {
      finish(error);
      return;
    }
    for (var i = 0; i < names.length; i++) {
      if (names[i] === "ready" || names[i] === "onReady") {
        continue;
      }
      api[names[i]] = caller(names[i]);
    }
    finish(null);
  });

  return api;
}
"""


async def client_js_endpoint(request: Request) -> Response:
    return Response(JS_CODE, media_type="application/javascript")
