"""
JavaScript snippets evaluated inside the dashboard page.

Each snippet is a single arrow function taking at most one argument, the form
``page.evaluate`` expects.
"""

STYLESHEET_SNAPSHOT = """
() => Array.from(document.styleSheets).map((sheet) => {
    const owner = sheet.ownerNode;
    const entry = {
        href: sheet.href || '',
        ownerHref: (owner && owner.getAttribute
            && (owner.getAttribute('data-vite-dev-id') || owner.getAttribute('href'))) || '',
        accessible: true,
        rules: [],
    };
    try {
        entry.rules = Array.from(sheet.cssRules || []).map((rule) => rule.cssText);
    } catch (e) {
        entry.accessible = false;
    }
    return entry;
})
"""

COUNT_TABLE_ROWS = """
(selector) => {
    let rows = 0;
    document.querySelectorAll(selector).forEach((table) => {
        rows = Math.max(rows, table.querySelectorAll('tr').length);
    });
    return rows;
}
"""

COLLECT_VALUE_TEXTS = """
({ root, container, selectors }) => {
    const view = document.querySelector(root);
    if (!view) {
        return [];
    }
    const scope = !container || view.matches(container) ? view : view.querySelector(container);
    if (!scope) {
        return [];
    }
    return Array.from(scope.querySelectorAll(selectors.join(',')))
        .map((el) => (el.textContent || '').trim());
}
"""

COUNT_RENDERED_ELEMENTS = """
(selector) => Array.from(document.querySelectorAll(selector)).filter((el) => {
    const box = el.getBoundingClientRect();
    return box.width > 0 && box.height > 0;
}).length
"""

RUN_COMMAND = """
({ name, args }) => {
    const api = window.__dashboardExport;
    if (!api || !api.commands || typeof api.commands[name] !== 'function') {
        return false;
    }
    api.commands[name](...(args || []));
    return true;
}
"""

POINTER_SEQUENCE = """
({ scope, text }) => {
    const root = document.querySelector(scope) || document;
    const candidates = root.querySelectorAll('button, [role="tab"], [role="button"], label, a, span, div');
    const target = Array.from(candidates).find((el) => (el.textContent || '').trim() === text);
    if (!target) {
        return false;
    }
    const options = { bubbles: true, cancelable: true, view: window };
    ['pointerdown', 'mousedown', 'pointerup', 'mouseup', 'click'].forEach((type) => {
        const Ctor = type.startsWith('pointer') && window.PointerEvent ? window.PointerEvent : MouseEvent;
        target.dispatchEvent(new Ctor(type, options));
    });
    return true;
}
"""

# Canvas swap, clone and restore happen in one synchronous evaluation so the
# live page never renders the swapped state.
CLONE_VIEW = """
(opts) => {
    const root = document.querySelector(opts.root);
    if (!root) {
        return { found: false, markup: '', canvases: 0 };
    }

    const swapped = [];
    root.querySelectorAll('canvas').forEach((canvas) => {
        let src;
        try {
            src = canvas.toDataURL('image/png');
        } catch (e) {
            return;
        }
        const img = document.createElement('img');
        img.src = src;
        img.setAttribute('data-captured-canvas', '');
        img.style.width = canvas.style.width || (canvas.clientWidth + 'px');
        img.style.height = canvas.style.height || (canvas.clientHeight + 'px');
        canvas.parentNode.replaceChild(img, canvas);
        swapped.push([canvas, img]);
    });

    let clone;
    try {
        clone = root.cloneNode(true);
    } finally {
        swapped.forEach(([canvas, img]) => img.parentNode.replaceChild(canvas, img));
    }

    const substitutions = opts.substitutions || {};
    clone.querySelectorAll('th, td').forEach((cell) => {
        const text = (cell.textContent || '').trim();
        if (Object.prototype.hasOwnProperty.call(substitutions, text)) {
            cell.textContent = substitutions[text];
            cell.classList.add('table-main-label');
        }
        opts.cellProps.forEach((prop) => cell.style.removeProperty(prop));
        if (!cell.getAttribute('style')) {
            cell.removeAttribute('style');
        }
    });

    clone.querySelectorAll('tr').forEach((row) => {
        opts.rowProps.forEach((prop) => row.style.removeProperty(prop));
        if (!row.getAttribute('style')) {
            row.removeAttribute('style');
        }
    });

    if (!opts.preserveWidths) {
        clone.querySelectorAll('col, colgroup').forEach((col) => {
            col.removeAttribute('width');
            col.style.removeProperty('width');
        });
    }

    if (opts.stripEmptyHeaderRows) {
        clone.querySelectorAll('thead tr').forEach((row) => {
            if (!(row.textContent || '').trim()) {
                row.remove();
            }
        });
    }

    clone.querySelectorAll('.uae-symbol').forEach((symbol) => {
        const next = symbol.nextSibling;
        if (!next || next.nodeType !== Node.TEXT_NODE || !/^\\s/.test(next.textContent)) {
            symbol.after(document.createTextNode(' '));
        }
    });

    clone.querySelectorAll('script').forEach((node) => node.remove());
    return { found: true, markup: clone.innerHTML, canvases: swapped.length };
}
"""

ACTIVE_TAB = """
(selector) => {
    const active = Array.from(document.querySelectorAll(selector)).find(
        (el) => el.classList.contains('active') || el.getAttribute('aria-selected') === 'true'
    );
    return active ? (active.textContent || '').trim() : null;
}
"""

READ_TOGGLES = """
(labels) => {
    const result = {};
    const allLabels = Array.from(document.querySelectorAll('label'));
    Object.entries(labels).forEach(([key, text]) => {
        const label = allLabels.find((el) => (el.textContent || '').trim().includes(text));
        const input = label ? (label.control || label.querySelector('input[type="checkbox"]')) : null;
        result[key] = input ? Boolean(input.checked) : false;
    });
    return result;
}
"""

ELEMENT_EXISTS = """
(selector) => document.querySelector(selector) !== null
"""
