from fastapi import APIRouter
from fastapi.responses import HTMLResponse


router = APIRouter()


@router.get("/sse", response_class=HTMLResponse)
async def sse_debug_page():
    html = """<!doctype html>
<html lang=\"en\">
<head>
  <meta charset=\"utf-8\" />
  <meta name=\"viewport\" content=\"width=device-width,initial-scale=1\" />
  <title>Log Stream Debug</title>
  <style>
    body { font-family: ui-monospace, SFMono-Regular, Menlo, Monaco, Consolas, "Liberation Mono", "Courier New", monospace; margin: 16px; }
    .row { display: flex; gap: 12px; align-items: center; flex-wrap: wrap; }
    .pill { background: #f2f2f2; border-radius: 999px; padding: 4px 10px; font-size: 12px; }
    #log { white-space: pre-wrap; border: 1px solid #ddd; padding: 12px; height: 70vh; overflow: auto; background: #fafafa; }
    .stderr { color: #b00020; }
    button { padding: 6px 10px; }
  </style>
</head>
<body>
  <div class=\"row\">
    <div class=\"pill\">Log Stream</div>
    <div id=\"status\">Status: idle</div>
    <label><input type=\"checkbox\" id=\"stdout\" checked /> stdout</label>
    <label><input type=\"checkbox\" id=\"stderr\" checked /> stderr</label>
    <button id=\"start\">Start</button>
    <button id=\"stop\">Stop</button>
  </div>
  <div id=\"log\"></div>

  <script>
    const statusEl = document.getElementById('status');
    const logEl = document.getElementById('log');
    let es = null;

    function append(text, cls) {
      const span = document.createElement('span');
      if (cls) span.className = cls;
      span.textContent = text;
      logEl.appendChild(span);
      logEl.scrollTop = logEl.scrollHeight;
    }

    function setStatus(text) {
      statusEl.textContent = `Status: ${text}`;
    }

    function connect() {
      if (es) { es.close(); }
      const streams = ['stdout', 'stderr'].filter((name) => document.getElementById(name).checked);
      if (!streams.length) { setStatus('no stream selected'); return; }
      setStatus('connecting');
      es = new EventSource(`/api/logs/stream?streams=${streams.join(',')}`);
      es.onerror = () => setStatus('error');
      es.addEventListener('stream_start', (evt) => {
        const data = JSON.parse(evt.data);
        setStatus(`connected as ${data.client_id}`);
      });
      es.addEventListener('log', (evt) => {
        const data = JSON.parse(evt.data);
        append(data.text, data.stream);
      });
    }

    document.getElementById('start').onclick = connect;
    document.getElementById('stop').onclick = () => {
      if (es) { es.close(); }
      setStatus('stopped');
    };
  </script>
</body>
</html>"""
    return HTMLResponse(content=html)
