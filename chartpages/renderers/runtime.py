"""
Browser runtime embedded in every emitted page.

The JavaScript loads datasets in any of the four data formats, applies the
chart controls (choices, multi-select filters, range filters) client-side and
draws each chart with a generic renderer: a D3 scatter/line view when the
chart declares ``x`` and ``y`` roles, otherwise a table of the filtered rows.
"""

from chartpages.data.schemas import DataFormat

# =============================================================================
# BROWSER LIBRARIES
# =============================================================================

D3_PATH = "d3@7/dist/d3.min.js"
PAPAPARSE_PATH = "papaparse@5.4.1/papaparse.min.js"
ARROW_PATH = "apache-arrow@14.0.2/Arrow.es2015.min.js"
PARQUET_WASM_PATH = "parquet-wasm@0.6.1/esm/parquet_wasm.js"

_CSV_FORMATS = {DataFormat.EMBEDDED, DataFormat.EXTERNAL_CSV}


def script_urls(formats: set[DataFormat], has_charts: bool, cdn_base: str) -> list[str]:
    """Classic ``<script src>`` URLs a page needs, in load order.

    PapaParse only for CSV formats, Arrow only for the columnar format, D3
    only when the page has charts.
    """
    cdn_base = cdn_base.rstrip("/")
    urls = []
    if has_charts:
        urls.append(f"{cdn_base}/{D3_PATH}")
    if formats & _CSV_FORMATS:
        urls.append(f"{cdn_base}/{PAPAPARSE_PATH}")
    if DataFormat.EXTERNAL_COLUMNAR in formats:
        urls.append(f"{cdn_base}/{ARROW_PATH}")
    return urls


def parquet_module_url(cdn_base: str) -> str:
    """ES module URL of parquet-wasm, loaded lazily by the runtime."""
    return f"{cdn_base.rstrip('/')}/{PARQUET_WASM_PATH}"


# =============================================================================
# CSS
# =============================================================================


def get_page_css() -> str:
    """Stylesheet shared by all pages."""
    return '''
:root {
    --cp-text: #2d3748;
    --cp-muted: #718096;
    --cp-border: #e2e8f0;
    --cp-accent: #4299e1;
    --cp-bg-soft: #f7fafc;
}

* { box-sizing: border-box; }

body {
    font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
    color: var(--cp-text);
    max-width: 1200px;
    margin: 0 auto;
    padding: 24px;
    line-height: 1.5;
}

.cp-header h1 { margin-bottom: 4px; }
.cp-header .cp-notes { color: var(--cp-muted); }

.cp-separator {
    border: none;
    border-top: 1px solid var(--cp-border);
    margin: 32px 0;
}

.cp-chart h3 { margin: 0 0 8px 0; }
.cp-chart .cp-notes { color: var(--cp-muted); font-size: 0.9em; }

.cp-controls {
    display: flex;
    flex-wrap: wrap;
    gap: 16px;
    margin-bottom: 12px;
    padding: 8px 12px;
    background: var(--cp-bg-soft);
    border-radius: 6px;
}

.cp-control label {
    display: block;
    font-size: 0.8em;
    font-weight: 600;
    color: var(--cp-muted);
}

.cp-control select[multiple] { min-width: 140px; }

.cp-canvas { min-height: 120px; overflow-x: auto; }

.cp-canvas table { border-collapse: collapse; font-size: 0.85em; }
.cp-canvas th, .cp-canvas td {
    border: 1px solid var(--cp-border);
    padding: 4px 8px;
    text-align: left;
}
.cp-canvas th { background: var(--cp-bg-soft); }

.cp-status { color: var(--cp-muted); font-style: italic; }
.cp-error { color: #c53030; }

.cp-attribution {
    text-align: right;
    font-size: 0.8em;
    color: #666;
    margin-top: 4px;
}

.cp-links ul { list-style: none; padding-left: 0; }
.cp-links li {
    padding: 10px 12px;
    margin-bottom: 8px;
    border-left: 4px solid var(--cp-accent);
    background: var(--cp-bg-soft);
}
.cp-links a { font-weight: 600; color: var(--cp-accent); text-decoration: none; }
.cp-links a:hover { text-decoration: underline; }
.cp-links .cp-link-description { color: var(--cp-muted); font-size: 0.9em; }

.cp-index-group { margin-bottom: 12px; }
.cp-index-group summary { cursor: pointer; }
.cp-index-group summary h3, .cp-index-group summary h4 { display: inline; }
.cp-index-count { color: var(--cp-muted); font-weight: normal; font-size: 0.8em; }
'''


# =============================================================================
# JAVASCRIPT
# =============================================================================


def get_page_js() -> str:
    """Dataset loader, control handling and generic chart renderer."""
    return r'''
(function () {
    "use strict";

    const CONFIG = window.CHARTPAGES_CONFIG || {};
    const SPECS = window.CHARTPAGES_SPECS || {};
    const datasetCache = {};

    function datasetElement(dataKey) {
        const elements = document.querySelectorAll("script[data-key]");
        for (let i = 0; i < elements.length; i++) {
            if (elements[i].dataset.key === dataKey) { return elements[i]; }
        }
        return null;
    }

    // Inverse of chartpages.encoding.formats.escape_script_text
    function unescapeScriptText(text) {
        return text.replace(/<(\\*)\\(\/script|!--)/gi, "<$1$2");
    }

    // Cells stay text; labelOf and the renderers convert them where needed
    function parseCsv(text) {
        const parsed = Papa.parse(text.replace(/\r?\n$/, ""), {header: true});
        return parsed.data;
    }

    function applyMissing(rows, markers) {
        const columns = Object.keys(markers);
        if (!columns.length) { return rows; }
        rows.forEach(function (row) {
            columns.forEach(function (col) {
                if (row[col] === markers[col]) { row[col] = null; }
            });
        });
        return rows;
    }

    async function loadParquet(src) {
        const parquet = await import(CONFIG.parquetWasmUrl);
        await parquet.default();
        const response = await fetch(src);
        const bytes = new Uint8Array(await response.arrayBuffer());
        const wasmTable = parquet.readParquet(bytes);
        const table = Arrow.tableFromIPC(wasmTable.intoIPCStream());
        return table.toArray().map(function (row) {
            const obj = row.toJSON();
            Object.keys(obj).forEach(function (k) {
                if (typeof obj[k] === "bigint") { obj[k] = Number(obj[k]); }
            });
            return obj;
        });
    }

    function loadDataset(dataKey) {
        if (datasetCache[dataKey]) { return datasetCache[dataKey]; }
        const el = datasetElement(dataKey);
        if (!el) {
            return Promise.reject(new Error("No dataset element for " + dataKey));
        }
        const format = el.dataset.format;
        const src = el.dataset.src;
        const markers = JSON.parse(el.dataset.na || "{}");
        let promise;
        if (format === "embedded") {
            promise = Promise.resolve(parseCsv(unescapeScriptText(el.textContent)));
        } else if (format === "external-csv") {
            promise = fetch(src).then(function (r) { return r.text(); }).then(parseCsv);
        } else if (format === "external-json") {
            promise = fetch(src).then(function (r) { return r.json(); });
        } else if (format === "external-columnar") {
            promise = loadParquet(src);
        } else {
            promise = Promise.reject(new Error("Unknown data format " + format));
        }
        promise = promise.then(function (rows) { return applyMissing(rows, markers); });
        datasetCache[dataKey] = promise;
        return promise;
    }

    // ------------------------------------------------------------------
    // Value labels (must match chartpages.pages.controls.value_label)
    // ------------------------------------------------------------------

    function labelOf(value, valueType) {
        if (value === null || value === undefined) { return null; }
        if (valueType === "bool") {
            return value === true || String(value).toLowerCase() === "true" ? "true" : "false";
        }
        if (valueType === "number") { return numberLabel(value); }
        if (valueType === "datetime") { return datetimeLabel(value); }
        return String(value);
    }

    function numberLabel(value) {
        if (typeof value === "string") {
            const text = value.trim().toLowerCase();
            if (text === "inf" || text === "+inf") { return "Infinity"; }
            if (text === "-inf") { return "-Infinity"; }
        }
        return String(Number(value));
    }

    function datetimeLabel(value) {
        let text;
        if (value instanceof Date) {
            text = value.toISOString();
        } else if (typeof value === "number") {
            text = new Date(value).toISOString();
        } else {
            text = String(value);
        }
        const m = /^(\d{4}-\d{2}-\d{2})(?:[T ](\d{2}:\d{2})(?::(\d{2}))?(?:\.(\d+))?)?/.exec(text);
        if (!m) { return text; }
        const base = m[1] + "T" + (m[2] || "00:00") + ":" + (m[3] || "00");
        const millis = ((m[4] || "") + "000").slice(0, 3);
        return millis === "000" ? base : base + "." + millis;
    }

    // Milliseconds since the epoch, reading naive values as UTC
    function toTime(value) {
        if (value === null || value === undefined || value === "") { return null; }
        return Date.parse(datetimeLabel(value) + "Z");
    }

    // ------------------------------------------------------------------
    // Controls
    // ------------------------------------------------------------------

    function rangeValue(input, valueType) {
        if (input.value === "") { return null; }
        if (valueType === "date" || valueType === "datetime") {
            return toTime(input.value);
        }
        return Number(input.value);
    }

    function cellValue(value, valueType) {
        if (valueType === "date" || valueType === "datetime") {
            return toTime(value);
        }
        return Number(value);
    }

    function readControls(chartId) {
        const state = [];
        const root = document.getElementById("chart-" + chartId);
        root.querySelectorAll("[data-control]").forEach(function (el) {
            const kind = el.dataset.control;
            const column = el.dataset.column;
            const valueType = el.dataset.valueType;
            if (kind === "choice") {
                state.push({kind: kind, column: column, valueType: valueType, value: el.value});
            } else if (kind === "filter") {
                const selected = Array.from(el.selectedOptions).map(function (o) { return o.value; });
                state.push({kind: kind, column: column, valueType: valueType, values: new Set(selected)});
            } else if (kind === "range") {
                state.push({
                    kind: kind,
                    column: column,
                    valueType: valueType,
                    min: rangeValue(el.querySelector(".cp-range-min"), valueType),
                    max: rangeValue(el.querySelector(".cp-range-max"), valueType)
                });
            }
        });
        return state;
    }

    function applyControls(rows, state) {
        return rows.filter(function (row) {
            return state.every(function (c) {
                const value = row[c.column];
                if (value === null || value === undefined) { return false; }
                if (c.kind === "choice") { return labelOf(value, c.valueType) === c.value; }
                if (c.kind === "filter") { return c.values.has(labelOf(value, c.valueType)); }
                const v = cellValue(value, c.valueType);
                if (c.min !== null && v < c.min) { return false; }
                if (c.max !== null && v > c.max) { return false; }
                return true;
            });
        });
    }

    // ------------------------------------------------------------------
    // Rendering
    // ------------------------------------------------------------------

    function asList(value) {
        if (value === undefined || value === null) { return []; }
        return Array.isArray(value) ? value : [value];
    }

    function renderTable(canvas, rows, maxRows) {
        const columns = rows.length ? Object.keys(rows[0]) : [];
        const table = document.createElement("table");
        const head = table.createTHead().insertRow();
        columns.forEach(function (col) {
            const th = document.createElement("th");
            th.textContent = col;
            head.appendChild(th);
        });
        const body = table.createTBody();
        rows.slice(0, maxRows).forEach(function (row) {
            const tr = body.insertRow();
            columns.forEach(function (col) { tr.insertCell().textContent = row[col]; });
        });
        canvas.replaceChildren(table);
        if (rows.length > maxRows) {
            const more = document.createElement("p");
            more.className = "cp-status";
            more.textContent = "Showing " + maxRows + " of " + rows.length + " rows";
            canvas.appendChild(more);
        }
    }

    function renderXY(canvas, rows, spec) {
        const options = spec.options || {};
        const width = options.width || 800;
        const height = options.height || 400;
        const margin = {top: 20, right: 120, bottom: 40, left: 60};
        const xCol = asList(spec.columns.x)[0];
        const yCols = asList(spec.columns.y);
        const groupCol = asList(spec.columns.group)[0];

        const isTime = rows.length && isNaN(Number(rows[0][xCol])) && !isNaN(Date.parse(rows[0][xCol]));
        const xValue = function (row) { return isTime ? new Date(toTime(row[xCol])) : Number(row[xCol]); };

        const series = [];
        yCols.forEach(function (yCol) {
            const groups = groupCol ? d3.group(rows, function (r) { return r[groupCol]; }) : new Map([["", rows]]);
            groups.forEach(function (groupRows, groupName) {
                const label = [yCol, groupName].filter(Boolean).join(" / ");
                const points = groupRows
                    .map(function (r) { return {x: xValue(r), y: r[yCol] === null ? NaN : Number(r[yCol])}; })
                    .filter(function (p) { return !isNaN(p.y) && p.x !== null; })
                    .sort(function (a, b) { return a.x - b.x; });
                series.push({label: label, points: points});
            });
        });

        const allPoints = series.flatMap(function (s) { return s.points; });
        const x = (isTime ? d3.scaleTime() : d3.scaleLinear())
            .domain(d3.extent(allPoints, function (p) { return p.x; }))
            .range([margin.left, width - margin.right]);
        const y = d3.scaleLinear()
            .domain(d3.extent(allPoints, function (p) { return p.y; })).nice()
            .range([height - margin.bottom, margin.top]);
        const color = d3.scaleOrdinal(d3.schemeTableau10);

        const svg = d3.create("svg").attr("width", width).attr("height", height);
        svg.append("g").attr("transform", "translate(0," + (height - margin.bottom) + ")").call(d3.axisBottom(x));
        svg.append("g").attr("transform", "translate(" + margin.left + ",0)").call(d3.axisLeft(y));

        series.forEach(function (s, i) {
            if (spec.chart_type === "line") {
                svg.append("path")
                    .datum(s.points)
                    .attr("fill", "none")
                    .attr("stroke", color(i))
                    .attr("stroke-width", 1.5)
                    .attr("d", d3.line().x(function (p) { return x(p.x); }).y(function (p) { return y(p.y); }));
            } else {
                svg.append("g").selectAll("circle").data(s.points).join("circle")
                    .attr("cx", function (p) { return x(p.x); })
                    .attr("cy", function (p) { return y(p.y); })
                    .attr("r", options.marker_size || 3)
                    .attr("fill", color(i))
                    .attr("opacity", 0.7);
            }
            svg.append("text")
                .attr("x", width - margin.right + 8)
                .attr("y", margin.top + i * 16)
                .attr("fill", color(i))
                .attr("font-size", "12px")
                .text(s.label);
        });
        canvas.replaceChildren(svg.node());
    }

    function renderChart(chartId) {
        const spec = SPECS[chartId];
        const canvas = document.querySelector("#chart-" + chartId + " .cp-canvas");
        canvas.innerHTML = '<p class="cp-status">Loading data...</p>';
        loadDataset(spec.data_key).then(function (rows) {
            const filtered = applyControls(rows, readControls(chartId));
            const hasXY = spec.columns && spec.columns.x && spec.columns.y;
            if (hasXY && (spec.chart_type === "scatter" || spec.chart_type === "line") && window.d3) {
                renderXY(canvas, filtered, spec);
            } else {
                renderTable(canvas, filtered, (spec.options || {}).max_rows || 200);
            }
        }).catch(function (err) {
            canvas.innerHTML = "";
            const p = document.createElement("p");
            p.className = "cp-error";
            p.textContent = "Could not load data: " + err.message;
            canvas.appendChild(p);
        });
    }

    function init() {
        Object.keys(SPECS).forEach(function (chartId) {
            if (SPECS[chartId].kind !== "chart") { return; }
            const root = document.getElementById("chart-" + chartId);
            if (!root) { return; }
            root.querySelectorAll("select, input").forEach(function (el) {
                el.addEventListener("change", function () { renderChart(chartId); });
            });
            renderChart(chartId);
        });
    }

    window.chartpages = {loadDataset: loadDataset, applyControls: applyControls, labelOf: labelOf};

    if (document.readyState === "loading") {
        document.addEventListener("DOMContentLoaded", init);
    } else {
        init();
    }
})();
'''
